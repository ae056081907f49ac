"""
=============================================================================
RULES
=============================================================================

A Rule binds a trigger to a reply, much like a route binds a path to a
handler. Where a route compares URL paths, a rule compares the decoded
text of one read from the socket.

=============================================================================
ANATOMY OF A RULE
=============================================================================

    Rule(
        trigger="PING",            # text to look for in the request
        response="PONG",           # reply, may contain "[content]"
        ignore_case=True,          # compare lower-cased copies
        mode=MatchMode.EQUALS,     # how the trigger is compared
        file=None,                 # optional FileSource for "[content]"
    )

    MATCH MODES
    ───────────
        CONTAINS     trigger in request
        EQUALS       request == trigger
        STARTS_WITH  request.startswith(trigger)
        ENDS_WITH    request.endswith(trigger)

    An empty trigger matches every request in CONTAINS, STARTS_WITH and
    ENDS_WITH mode, and only the empty request in EQUALS mode.

=============================================================================
FILE-BACKED REPLIES
=============================================================================

    Rule.with_file("GET motd", "200 [content]\\r\\n", "motd.txt")

    Every time the rule fires, motd.txt is read again (no caching) and
    each "[content]" in the template is replaced by its text. The file is
    read even when the template has no placeholder.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..errors import ConfigurationError, ResponseFileError


CONTENT_PLACEHOLDER = "[content]"


class MatchMode(Enum):
    """How a rule's trigger is compared with the request text."""
    CONTAINS = "contains"
    EQUALS = "equals"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"

    @classmethod
    def parse(cls, value: Union["MatchMode", str]) -> "MatchMode":
        """
        Accept a MatchMode, its value or its name in any case.

        "StartsWith", "starts_with", "startswith" and "STARTS_WITH" all
        resolve to MatchMode.STARTS_WITH.

        Raises:
            ConfigurationError: For anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_")
            for mode in cls:
                if key in (mode.value, mode.value.replace("_", "")):
                    return mode
        raise ConfigurationError(f"Unknown match mode: {value!r}")


@dataclass(frozen=True)
class FileSource:
    """
    A file whose decoded text replaces the placeholder of a reply.

    `encoding` only decodes the file. The reply is then encoded with the
    session's wire_encoding (strict ascii by default), so a file holding
    non-ASCII text needs a wider wire_encoding such as "utf-8" or
    "latin-1"; otherwise the reply raises EncodingError and ends the
    session.
    """
    path: str
    encoding: str = "utf-8"

    def read(self) -> str:
        """
        Read the whole file.

        Newline translation is disabled so the text is exactly what the
        file holds.

        Raises:
            ResponseFileError: File missing, unreadable, undecodable, or
                the encoding is unknown.
        """
        try:
            with open(self.path, "r", encoding=self.encoding, newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError, LookupError) as e:
            raise ResponseFileError(f"Can't read from file {self.path!r}: {e}") from e


@dataclass(frozen=True)
class Rule:
    """
    An immutable trigger/reply pair.

    Frozen so that a rule shared by many session threads can never change
    underneath them. Matching works on local lower-cased copies and never
    writes to `trigger`.
    """

    trigger: str
    response: str
    ignore_case: bool = False
    mode: MatchMode = MatchMode.CONTAINS
    file: Optional[FileSource] = None

    def __post_init__(self):
        if not isinstance(self.trigger, str):
            raise ConfigurationError(f"Trigger must be a string, got {self.trigger!r}")
        if not isinstance(self.response, str):
            raise ConfigurationError(f"Response must be a string, got {self.response!r}")
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "mode", MatchMode.parse(self.mode))

    @classmethod
    def with_file(
        cls,
        trigger: str,
        template: str,
        path: str,
        encoding: str = "utf-8",
        ignore_case: bool = False,
        mode: Union[MatchMode, str] = MatchMode.CONTAINS,
    ) -> "Rule":
        """
        Create a rule whose reply embeds the text of `path`.

        See FileSource for how `encoding` relates to the wire encoding.
        """
        return cls(
            trigger=trigger,
            response=template,
            ignore_case=ignore_case,
            mode=mode,
            file=FileSource(path=str(path), encoding=encoding),
        )

    def matches(self, request: str) -> bool:
        """Check whether `request` triggers this rule."""
        trigger = self.trigger
        if self.ignore_case:
            trigger = trigger.lower()
            request = request.lower()

        if self.mode is MatchMode.EQUALS:
            return request == trigger
        if self.mode is MatchMode.CONTAINS:
            return trigger in request
        if self.mode is MatchMode.STARTS_WITH:
            return request.startswith(trigger)
        return request.endswith(trigger)

    def build_response(self) -> str:
        """
        Produce the reply text.

        Returns:
            The template as-is when there is no file, otherwise the
            template with every placeholder replaced by the file's text.

        Raises:
            ResponseFileError: The file could not be read.
        """
        if self.file is None:
            return self.response

        content = self.file.read()
        return self.response.replace(CONTENT_PLACEHOLDER, content)
