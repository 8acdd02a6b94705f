"""Parsing of the LaunchServices registration dump.

``lsregister -dump`` prints one record per registered bundle, claim or type,
separated by lines of dashes. Each record is a list of ``key: value`` fields;
the fields used here are:

    uti:            public.plain-text
    flags:          active  apple-internal  exported  core  trusted
    conforms to:    public.text
    tags:           .txt, .text, 'TEXT', text/plain

An extension can be claimed by several types. The owner's ``exported``
declaration is preferred over ``imported`` ones from other apps, in whatever
order the dump lists them.

Older releases print ``type id:`` instead of ``uti:``, sometimes followed by
an object reference such as ``(0x1a8)``.
"""

import re
from collections import deque
from dataclasses import dataclass, field

DEFAULT_MAX_EXTENSION_LENGTH = 10

_SEPARATOR_RE = re.compile(r"^-{10,}\s*$")
_FIELD_RE = re.compile(r"^\s*([A-Za-z][A-Za-z ]*?):\s+(.*?)\s*$")
_EXTENSION_TAG_RE = re.compile(r"^\s*\.([a-zA-Z0-9]+)$")
_OBJECT_REF_RE = re.compile(r"\s*\(0x[0-9a-fA-F]+\)$")


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _extension_tags(value: str) -> list[str]:
    """Return the lowercased extensions among the comma separated tags."""
    extensions = []
    for token in value.split(","):
        match = _EXTENSION_TAG_RE.match(token)
        if match:
            extensions.append(match.group(1).lower())
    return extensions


def extract_extensions(
    dump_text: str, max_length: int = DEFAULT_MAX_EXTENSION_LENGTH
) -> set[str]:
    """Collect every file extension mentioned in a ``tags:`` line.

    Only tokens shaped like ``.abc`` count. Results are lowercased and
    deduplicated; tokens longer than ``max_length`` are dropped.

    Args:
        dump_text: Output of ``lsregister -dump``
        max_length: Longest extension kept

    Returns:
        Set of extensions without leading dots
    """
    extensions: set[str] = set()
    for line in dump_text.splitlines():
        match = _FIELD_RE.match(line)
        if not match or match.group(1) != "tags":
            continue
        for ext in _extension_tags(match.group(2)):
            if 0 < len(ext) <= max_length:
                extensions.add(ext)
    return extensions


def iter_records(dump_text: str) -> list[dict[str, str]]:
    """Split a dump into records of fields.

    The first occurrence of a key inside a record wins.
    """
    records: list[dict[str, str]] = []
    current: dict[str, str] = {}
    for line in dump_text.splitlines():
        if _SEPARATOR_RE.match(line):
            if current:
                records.append(current)
            current = {}
            continue
        match = _FIELD_RE.match(line)
        if match:
            current.setdefault(match.group(1), match.group(2))
    if current:
        records.append(current)
    return records


@dataclass
class TypeTable:
    """Extension to type mapping and type conformance graph."""

    extension_types: dict[str, str] = field(default_factory=dict)
    parents: dict[str, set[str]] = field(default_factory=dict)
    exported_extensions: set[str] = field(default_factory=set)

    def resolve(self, extension: str) -> str | None:
        """Map an extension to its declared type identifier."""
        return self.extension_types.get(extension.lower())

    def conforms_to(self, uti: str, parent: str) -> bool:
        """Check whether ``uti`` is ``parent`` or (transitively) conforms to it."""
        if uti == parent:
            return True
        seen = {uti}
        queue = deque([uti])
        while queue:
            for candidate in self.parents.get(queue.popleft(), ()):
                if candidate == parent:
                    return True
                if candidate not in seen:
                    seen.add(candidate)
                    queue.append(candidate)
        return False

    def add_type(
        self,
        uti: str,
        conforms_to: list[str],
        extensions: list[str],
        exported: bool = False,
    ) -> None:
        """Register a type declaration.

        An exported declaration of an extension replaces an imported one;
        otherwise the earlier declaration wins.
        """
        self.parents.setdefault(uti, set()).update(conforms_to)
        for ext in extensions:
            if ext in self.exported_extensions:
                continue
            if exported:
                self.extension_types[ext] = uti
                self.exported_extensions.add(ext)
            else:
                self.extension_types.setdefault(ext, uti)

    def __len__(self) -> int:
        return len(self.parents)


def parse_type_table(dump_text: str) -> TypeTable:
    """Build a TypeTable from the type records of a dump.

    Args:
        dump_text: Output of ``lsregister -dump``

    Returns:
        Parsed type table
    """
    table = TypeTable()
    for record in iter_records(dump_text):
        uti = record.get("uti") or record.get("type id")
        if not uti:
            continue
        uti = _OBJECT_REF_RE.sub("", uti).strip()
        if not uti:
            continue
        table.add_type(
            uti,
            _split_list(record.get("conforms to", "")),
            _extension_tags(record.get("tags", "")),
            exported="exported" in record.get("flags", "").split(),
        )
    return table
