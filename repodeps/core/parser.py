"""Repository index parser for Debian Control File (DCF) metadata.

Parses the ``PACKAGES`` index of a CRAN-like repository:

- Stanzas are separated by one or more blank lines
- Each stanza is a set of ``Field: value`` lines
- Lines starting with a space or tab continue the previous field
- ``Package`` and ``Version`` identify the record
- Dependency fields (``Depends``, ``Imports``, ``LinkingTo`` by default)
  hold comma-separated entries of the form ``name`` or ``name (op version)``
- Every other field is ignored

Parsing favors recovery: a malformed stanza is dropped and recorded as a
:class:`ParseDiagnostic`, and the remaining stanzas are still returned.

Typical usage::

    from repodeps.core.parser import RepositoryParser

    parser = RepositoryParser()
    result = parser.parse(Path("PACKAGES").read_bytes())

    for package in result.packages:
        print(package.name, package.version)

    for diagnostic in result.diagnostics:
        print(diagnostic)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from repodeps.models.package import NameAndVersion, Package, is_valid_package_name
from repodeps.models.version import Version
from repodeps.utils.logger import get_logger
from repodeps.exceptions import ParseError
from repodeps.constants import (
    DEFAULT_ALLOW_MISSING_VERSION,
    DEFAULT_DEPENDENCY_FIELDS,
    PACKAGE_FIELD,
    VERSION_FIELD,
)

logger = get_logger("parser")

# Public API
__all__ = ["RepositoryParser", "ParseResult", "ParseDiagnostic"]

_BOM = "\ufeff"


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParseDiagnostic:
    """Why a stanza was dropped.

    Attributes:
        line_number: 1-based line where the problem was found.
        message: Human-readable description.
        field: Field being parsed, if any.
        content: Offending text, if any.
    """

    line_number: int
    message: str
    field: Optional[str] = None
    content: Optional[str] = None

    def to_error(self, file_path: Optional[str] = None) -> ParseError:
        """Convert to a :class:`ParseError` for strict parsing."""
        return ParseError(
            self.message,
            line_number=self.line_number,
            line_content=self.content,
            file_path=file_path,
        )

    def __str__(self) -> str:
        where = f"line {self.line_number}"
        if self.field:
            where += f", field {self.field}"
        return f"{where}: {self.message}"


@dataclass
class ParseResult:
    """Outcome of parsing one buffer.

    Attributes:
        packages: Packages built from well-formed stanzas, in source order.
        diagnostics: One entry per dropped stanza.
        stanza_count: Number of stanzas seen, including dropped ones.
        bytes_consumed: Size of the input buffer in bytes.
    """

    packages: List[Package] = field(default_factory=list)
    diagnostics: List[ParseDiagnostic] = field(default_factory=list)
    stanza_count: int = 0
    bytes_consumed: int = 0

    @property
    def dropped_count(self) -> int:
        """Number of stanzas rejected."""
        return len(self.diagnostics)

    def has_diagnostics(self) -> bool:
        """Return True if any stanza was dropped."""
        return bool(self.diagnostics)


# ---------------------------------------------------------------------------
# Internal stanza representation
# ---------------------------------------------------------------------------


@dataclass
class _Stanza:
    """Raw fields of one stanza with the line each field started on."""

    start_line: int
    fields: Dict[str, Tuple[int, str]] = field(default_factory=dict)
    error: Optional[ParseDiagnostic] = None


class _StanzaBuilder:
    """Accumulates lines into a :class:`_Stanza`, folding continuations."""

    def __init__(self, start_line: int) -> None:
        self.stanza = _Stanza(start_line=start_line)
        self._field: Optional[str] = None
        self._line: int = start_line
        self._parts: List[str] = []

    def add_line(self, line_number: int, line: str) -> None:
        if self.stanza.error is not None:
            return

        if line[0] in " \t":
            if self._field is None:
                self._fail(line_number, "continuation line without a field", line)
                return
            self._parts.append(line.strip())
            return

        name, sep, value = line.partition(":")
        name = name.strip()
        if not sep or not name:
            self._fail(line_number, "expected 'Field: value'", line)
            return

        self._flush()
        self._field = name
        self._line = line_number
        self._parts = [value.strip()]

    def finish(self) -> _Stanza:
        self._flush()
        return self.stanza

    def _flush(self) -> None:
        if self._field is None:
            return
        if self._field in self.stanza.fields:
            logger.debug(
                "Duplicate field %s on line %d overrides line %d",
                self._field,
                self._line,
                self.stanza.fields[self._field][0],
            )
        value = " ".join(part for part in self._parts if part)
        self.stanza.fields[self._field] = (self._line, value)
        self._field = None
        self._parts = []

    def _fail(self, line_number: int, message: str, content: str) -> None:
        self.stanza.error = ParseDiagnostic(
            line_number=line_number,
            message=message,
            field=self._field,
            content=content,
        )


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class RepositoryParser:
    """Parser turning repository index text into :class:`Package` records.

    The parser holds only policy; it keeps no state between calls and never
    touches a :class:`~repodeps.core.repository.Repository` itself.

    Args:
        dependency_fields: Fields whose entries become package dependencies,
            collected in stanza order.
        allow_missing_version: Accept stanzas without a ``Version`` field,
            defaulting the version to ``0.0.0.0``. When ``False`` such
            stanzas are dropped.
        strict: Raise :exc:`ParseError` on the first malformed stanza
            instead of dropping it.
        repository_name: Name stamped on every parsed package.

    Example::

        >>> parser = RepositoryParser(allow_missing_version=True)
        >>> result = parser.parse(b"Package: foo\\n")
        >>> result.packages[0].version
        Version(major=0, minor=0, patch=0, rev=0)
    """

    def __init__(
        self,
        *,
        dependency_fields: Sequence[str] = DEFAULT_DEPENDENCY_FIELDS,
        allow_missing_version: bool = DEFAULT_ALLOW_MISSING_VERSION,
        strict: bool = False,
        repository_name: str = "",
    ) -> None:
        self.dependency_fields: Tuple[str, ...] = tuple(dependency_fields)
        self.allow_missing_version = allow_missing_version
        self.strict = strict
        self.repository_name = repository_name

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(
        self,
        source: Union[bytes, str],
        *,
        source_name: Optional[str] = None,
    ) -> ParseResult:
        """Parse a whole index buffer.

        Args:
            source: Raw index contents. Bytes are decoded as UTF-8; bytes
                that are not valid UTF-8 are replaced, which only affects
                free-text fields.
            source_name: Optional file name or URL used in messages.

        Returns:
            A :class:`ParseResult` with every well-formed package.

        Raises:
            ParseError: ``strict`` is set and a stanza is malformed.
        """
        if isinstance(source, bytes):
            bytes_consumed = len(source)
            text = source.decode("utf-8", errors="replace")
        else:
            bytes_consumed = len(source.encode("utf-8"))
            text = source

        if text.startswith(_BOM):
            text = text[len(_BOM):]

        result = ParseResult(bytes_consumed=bytes_consumed)

        for stanza in self._iter_stanzas(text):
            result.stanza_count += 1
            outcome = self._build_package(stanza)

            if isinstance(outcome, Package):
                result.packages.append(outcome)
                continue

            if self.strict:
                raise outcome.to_error(source_name)
            logger.debug(
                "Dropped stanza starting on line %d: %s",
                stanza.start_line,
                outcome,
            )
            result.diagnostics.append(outcome)

        logger.debug(
            "Parsed %d package(s) from %d stanza(s)%s",
            len(result.packages),
            result.stanza_count,
            f" in {source_name}" if source_name else "",
        )
        return result

    def parse_dependencies(
        self,
        value: str,
        *,
        line_number: int = 0,
        field_name: Optional[str] = None,
    ) -> List[NameAndVersion]:
        """Parse a comma-separated dependency field value.

        Empty entries (for example from a trailing comma) are skipped.

        Raises:
            ParseError: An entry is malformed. The error carries the line
                number and field of the offending entry.
        """
        entries: List[NameAndVersion] = []
        for raw in value.split(","):
            if not raw.strip():
                continue
            try:
                entries.append(NameAndVersion.parse(raw))
            except ParseError as exc:
                raise ParseError(
                    f"{field_name or 'dependency'}: {exc.message}",
                    line_number=line_number,
                    line_content=raw.strip(),
                ) from exc
        return entries

    # ------------------------------------------------------------------
    # Stanza splitting
    # ------------------------------------------------------------------

    def _iter_stanzas(self, text: str) -> Iterator[_Stanza]:
        """Yield stanzas, splitting on blank lines."""
        builder: Optional[_StanzaBuilder] = None

        for line_number, raw_line in enumerate(text.split("\n"), start=1):
            line = raw_line.rstrip("\r")
            if not line.strip():
                if builder is not None:
                    yield builder.finish()
                    builder = None
                continue

            if builder is None:
                builder = _StanzaBuilder(line_number)
            builder.add_line(line_number, line)

        if builder is not None:
            yield builder.finish()

    # ------------------------------------------------------------------
    # Stanza interpretation
    # ------------------------------------------------------------------

    def _build_package(
        self,
        stanza: _Stanza,
    ) -> Union[Package, ParseDiagnostic]:
        """Turn a raw stanza into a package, or explain why not."""
        if stanza.error is not None:
            return stanza.error

        fields = stanza.fields

        if PACKAGE_FIELD not in fields:
            return ParseDiagnostic(
                line_number=stanza.start_line,
                message="stanza has no Package field",
            )

        name_line, name = fields[PACKAGE_FIELD]
        if not is_valid_package_name(name):
            return ParseDiagnostic(
                line_number=name_line,
                message=f"invalid package name {name!r}",
                field=PACKAGE_FIELD,
                content=name,
            )

        version = Version()
        if VERSION_FIELD in fields:
            version_line, version_text = fields[VERSION_FIELD]
            try:
                version = Version.parse(version_text)
            except ParseError as exc:
                return ParseDiagnostic(
                    line_number=version_line,
                    message=exc.message,
                    field=VERSION_FIELD,
                    content=version_text,
                )
        elif not self.allow_missing_version:
            return ParseDiagnostic(
                line_number=stanza.start_line,
                message=f"package {name} has no Version field",
                field=VERSION_FIELD,
            )

        dependencies: List[NameAndVersion] = []
        for field_name, (line_number, value) in fields.items():
            if field_name not in self.dependency_fields:
                continue
            try:
                dependencies.extend(
                    self.parse_dependencies(
                        value,
                        line_number=line_number,
                        field_name=field_name,
                    )
                )
            except ParseError as exc:
                return ParseDiagnostic(
                    line_number=line_number,
                    message=exc.message,
                    field=field_name,
                    content=exc.line_content,
                )

        return Package(
            name=name,
            version=version,
            dependencies=tuple(dependencies),
            repository=self.repository_name,
        )
