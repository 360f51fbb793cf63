"""
Declarative tool schemas and the runtime validator that interprets them.

A schema is plain data: a tree of FieldSpec values. Handlers never validate
their own arguments; the registry runs `validate` on the way in and on the way
out, and renders the same specs as JSON Schema for the model.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

FieldKind = Literal["string", "number", "boolean", "enum", "object", "array", "record"]


class FieldSpec(BaseModel):
    """
    Reason:
    - One field of a tool's input or output shape.
    Benefit:
    - Validation and the model-facing declaration come from the same data.
    """

    model_config = ConfigDict(frozen=True)

    kind: FieldKind
    required: bool = True
    description: str = ""
    enum_values: Optional[Tuple[str, ...]] = None
    min_length: Optional[int] = Field(default=None, ge=0)
    nullable: bool = False
    fields: Optional[Dict[str, "FieldSpec"]] = None
    items: Optional["FieldSpec"] = None


FieldSpec.model_rebuild()


class Validation(BaseModel):
    """Result of validating one value: either a cleaned value or a list of errors."""

    ok: bool
    value: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)


# ----------------------------
# Builders
# ----------------------------

def string_field(
    description: str = "", *, required: bool = True, min_length: int | None = None, nullable: bool = False
) -> FieldSpec:
    return FieldSpec(
        kind="string", required=required, description=description, min_length=min_length, nullable=nullable
    )


def number_field(description: str = "", *, required: bool = True, nullable: bool = False) -> FieldSpec:
    return FieldSpec(kind="number", required=required, description=description, nullable=nullable)


def boolean_field(description: str = "", *, required: bool = True, nullable: bool = False) -> FieldSpec:
    return FieldSpec(kind="boolean", required=required, description=description, nullable=nullable)


def enum_field(options: List[str], description: str = "", *, required: bool = True) -> FieldSpec:
    return FieldSpec(kind="enum", required=required, description=description, enum_values=tuple(options))


def record_field(description: str = "", *, required: bool = True, nullable: bool = False) -> FieldSpec:
    return FieldSpec(kind="record", required=required, description=description, nullable=nullable)


def array_field(items: FieldSpec, description: str = "", *, required: bool = True) -> FieldSpec:
    return FieldSpec(kind="array", required=required, description=description, items=items)


def object_schema(fields: Dict[str, FieldSpec], description: str = "", *, required: bool = True) -> FieldSpec:
    return FieldSpec(kind="object", required=required, description=description, fields=dict(fields))


# ----------------------------
# Validation
# ----------------------------

def kind_of(value: Any) -> str:
    if value is None:
        return "null"
    # bool is an int subclass; check it first
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _check_value(spec: FieldSpec, value: Any, path: str, errors: List[str]) -> Any:
    actual = kind_of(value)

    if value is None and spec.nullable:
        return None

    if spec.kind == "enum":
        options = list(spec.enum_values or ())
        if actual != "string":
            errors.append(f"{path}: expected enum, got {actual}; valid options: {', '.join(options)}")
            return None
        if value not in options:
            errors.append(f"{path}: invalid value {value!r}; valid options: {', '.join(options)}")
        return value

    if spec.kind == "record":
        if actual != "object":
            errors.append(f"{path}: expected record, got {actual}")
            return None
        return dict(value)

    if actual != spec.kind:
        errors.append(f"{path}: expected {spec.kind}, got {actual}")
        return None

    if spec.kind == "string" and spec.min_length is not None and len(value) < spec.min_length:
        errors.append(f"{path}: shorter than minimum length {spec.min_length}")
        return value

    if spec.kind == "object":
        return _check_fields(spec.fields or {}, value, path, errors)

    if spec.kind == "array":
        if spec.items is None:
            return list(value)
        return [_check_value(spec.items, item, f"{path}[{i}]", errors) for i, item in enumerate(value)]

    return value


def _check_fields(
    fields: Dict[str, FieldSpec], value: Mapping, path: str, errors: List[str]
) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for name, spec in fields.items():
        where = f"{path}.{name}" if path else name
        present = name in value
        raw = value.get(name) if present else None

        if not present:
            if spec.required:
                errors.append(f"{where}: missing")
            continue

        # an optional non-nullable null means "not supplied"
        if raw is None and not spec.required and not spec.nullable:
            continue

        cleaned[name] = _check_value(spec, raw, where, errors)

    # undeclared keys are dropped, never an error
    return cleaned


def validate(schema: FieldSpec, value: Any) -> Validation:
    """
    Validate `value` against an object schema.

    Pure: no I/O, no store access. The returned value only carries declared
    fields, so handlers can be called with `**validation.value` safely.
    """
    if schema.kind != "object":
        raise ValueError("validate() expects an object schema at the root")

    if kind_of(value) != "object":
        return Validation(ok=False, errors=[f"expected object, got {kind_of(value)}"])

    errors: List[str] = []
    cleaned = _check_fields(schema.fields or {}, value, "", errors)
    if errors:
        return Validation(ok=False, errors=errors)
    return Validation(ok=True, value=cleaned)


# ----------------------------
# Declarations
# ----------------------------

_JSON_TYPES = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "enum": "string",
    "object": "object",
    "array": "array",
    "record": "object",
}


def to_json_schema(spec: FieldSpec) -> Dict[str, Any]:
    """Render a FieldSpec as the JSON Schema fragment the model sees."""
    json_type: Any = _JSON_TYPES[spec.kind]
    out: Dict[str, Any] = {"type": [json_type, "null"] if spec.nullable else json_type}

    if spec.description:
        out["description"] = spec.description
    if spec.kind == "enum":
        out["enum"] = list(spec.enum_values or ())
    if spec.min_length is not None:
        out["minLength"] = spec.min_length
    if spec.kind == "object":
        fields = spec.fields or {}
        out["properties"] = {name: to_json_schema(f) for name, f in fields.items()}
        out["required"] = [name for name, f in fields.items() if f.required]
    if spec.kind == "array" and spec.items is not None:
        out["items"] = to_json_schema(spec.items)
    return out


def describe_fields(schema: FieldSpec) -> str:
    """One-line summary of an object schema's top-level fields, e.g. for output declarations."""
    parts = []
    for name, spec in (schema.fields or {}).items():
        kind = spec.kind
        if spec.nullable:
            kind += " or null"
        text = f"{name} ({kind})"
        if spec.description:
            text += f": {spec.description}"
        parts.append(text)
    return "; ".join(parts)
