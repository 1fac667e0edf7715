"""Declarative table definitions and CREATE TABLE statement handling.

Tables are described as a map of field names to ``FieldDescriptor``s. A
descriptor may also be given in shorthand, as the bare type string, or as a
dict with the keys ``type``, ``size``, ``typemod``, ``default``, ``null`` and
``autoincrement``.

Statements target SQLite. An auto-incremented field must be the table's only
primary key, since SQLite only generates keys for ``INTEGER PRIMARY KEY``
columns.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from mlp2to3.core.exceptions import SchemaError


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT = _NoDefault()

# Table-level constraint keywords; definitions starting with these are not columns
_CONSTRAINT_KEYWORDS = {"PRIMARY", "UNIQUE", "KEY", "INDEX", "CONSTRAINT", "FOREIGN", "CHECK"}

_CREATE_TABLE_RE = re.compile(
    r"^\s*CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?[`\"\[]?(?P<name>[\w$]+)[`\"\]]?\s*"
    r"\((?P<body>.*)\)\s*;?\s*$",
    re.IGNORECASE | re.DOTALL,
)


@dataclass(frozen=True)
class FieldDescriptor:
    """Describes a single table column."""
    type: str
    size: Optional[Union[int, str]] = None
    typemod: Optional[str] = None
    default: Any = NO_DEFAULT
    nullable: bool = True
    autoincrement: bool = False

    @classmethod
    def of(cls, value: Union["FieldDescriptor", str, Mapping[str, Any]]) -> "FieldDescriptor":
        """Create a descriptor from any of the accepted forms.

        Args:
            value: A descriptor, a type string, or a descriptor dict

        Returns:
            The equivalent FieldDescriptor
        """
        if isinstance(value, FieldDescriptor):
            return value
        if isinstance(value, Mapping):
            return cls(
                type=str(value.get("type") or ""),
                size=value.get("size"),
                typemod=value.get("typemod"),
                default=value["default"] if "default" in value else NO_DEFAULT,
                nullable=bool(value.get("null", True)),
                autoincrement=bool(value.get("autoincrement", False)),
            )
        return cls(type=str(value))

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    @property
    def is_text(self) -> bool:
        """Whether SQLite gives the column TEXT affinity."""
        upper = self.type.upper()
        return any(part in upper for part in ("CHAR", "CLOB", "TEXT"))


FieldSpec = Union[FieldDescriptor, str, Mapping[str, Any]]


def format_default(value: Any) -> str:
    """Render a default value as an SQL literal.

    None, booleans and numbers are emitted bare; everything else is quoted.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"


def build_create_table(
    table: str,
    fields: Mapping[str, FieldSpec],
    primary_keys: Sequence[str],
    collation: Optional[str] = None,
) -> str:
    """Build a CREATE TABLE statement from field descriptors.

    Args:
        table: Full (prefixed) table name
        fields: Map of field names to descriptors
        primary_keys: Names of the fields making up the primary key
        collation: Collation applied to text columns

    Returns:
        The CREATE TABLE statement, one column definition per line

    Raises:
        SchemaError: If a primary key is not described, a field has an
            empty name or type, or auto-increment is misused
    """
    primary_keys = [key.strip() for key in primary_keys]
    names = {name.strip() for name in fields}

    for key in primary_keys:
        if key not in names:
            raise SchemaError(f'No field descriptor specified for primary key "{key}"')

    lines: List[str] = []
    inline_primary_key = False

    for raw_name, raw_field in fields.items():
        name = raw_name.strip()
        if not name:
            raise SchemaError("Fields are required to have a non-empty name")

        field = FieldDescriptor.of(raw_field)
        field_type = field.type.strip().lower()
        if not field_type:
            raise SchemaError(f'Field "{name}" is required to have a non-empty type')

        if field.autoincrement:
            if primary_keys != [name]:
                raise SchemaError(
                    f'Auto-increment field "{name}" must be the only primary key'
                )
            lines.append(f"{name} INTEGER PRIMARY KEY AUTOINCREMENT")
            inline_primary_key = True
            continue

        line = f"{name} {field_type}"
        # SQLite only accepts the size as the last token of a type name
        if field.typemod and field.typemod.strip():
            line += f" {field.typemod.strip().upper()}"
        if field.size:
            line += f"({field.size})"
        if collation and field.is_text:
            line += f" COLLATE {collation}"
        if field.has_default:
            line += f" DEFAULT {format_default(field.default)}"
        line += " NULL" if field.nullable else " NOT NULL"
        lines.append(line)

    if primary_keys and not inline_primary_key:
        lines.append(f"PRIMARY KEY ({','.join(primary_keys)})")

    body = ",\n".join(f"  {line}" for line in lines)
    return f"CREATE TABLE {table} (\n{body}\n)"


def split_definitions(body: str) -> List[str]:
    """Split a CREATE TABLE body on top-level commas."""
    parts: List[str] = []
    depth = 0
    quote: Optional[str] = None
    current: List[str] = []

    for char in body:
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"', "`"):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def parse_create_table(ddl: str) -> Optional[Tuple[str, Dict[str, str]]]:
    """Extract the table name and column definitions from a CREATE TABLE.

    Args:
        ddl: SQL statement

    Returns:
        Tuple of (table name, {column name: full column definition}), or
        None if the statement is not a CREATE TABLE
    """
    match = _CREATE_TABLE_RE.match(ddl)
    if not match:
        return None

    columns: Dict[str, str] = {}
    for definition in split_definitions(match.group("body")):
        first = definition.split(None, 1)[0]
        if first.upper() in _CONSTRAINT_KEYWORDS:
            continue
        columns[first.strip('`"[]')] = definition

    return match.group("name"), columns
