"""Compile JSON-Schema trees into Python typing declarations (TypedDicts and aliases)."""
from __future__ import annotations

import keyword
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from riptide.errors import BrokenReferenceError
from riptide.references import make_reference, reference_name


# ============================================================
# Configuration
# ============================================================

@dataclass(frozen=True)
class TypeGeneratorConfig:
    """Configuration for translating JSON Schema into Python typing expressions."""
    primitive_type_map: dict[str, str] = field(
        default_factory=lambda: {
            "string": "str",
            "integer": "int",
            "number": "float",
            "boolean": "bool",
            "null": "None",
        }
    )
    unknown_type: str = "Any"
    open_object_type: str = "dict[str, Any]"

    # Field descriptions become comments above class-syntax fields.
    emit_field_comments: bool = True


# ============================================================
# Naming helpers
# ============================================================

def _capitalize_part(part: str) -> str:
    """Capitalize one name part; all-caps words such as GET become Get."""
    if len(part) > 1 and part.isalpha() and part.isupper():
        return part.capitalize()
    return part[:1].upper() + part[1:]


def to_pascal_case(text: str) -> str:
    """Convert a path-like or dotted string into PascalCase."""
    normalized = re.sub(r"[^0-9a-zA-Z]+", "_", text)
    parts = [part for part in normalized.split("_") if part]
    return "".join(_capitalize_part(part) for part in parts)


def is_identifier_key(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


def to_python_identifier(text: str, *, fallback: str = "Type") -> str:
    """Return `text` if it is a usable identifier, else a PascalCase rendering of it."""
    if is_identifier_key(text):
        return text
    candidate = to_pascal_case(text) or fallback
    if candidate[0].isdigit():
        candidate = f"{fallback}{candidate}"
    if keyword.iskeyword(candidate):
        candidate = f"{candidate}_"
    return candidate


def _is_literal_value(value: Any) -> bool:
    return value is None or isinstance(value, (str, bool, int))


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


# ============================================================
# Declaration specs
# ============================================================

@dataclass(frozen=True)
class FieldSpec:
    """One key of a TypedDict."""
    key: str
    type_expression: str
    required: bool
    description: str | None = None


@dataclass
class TypedDictSpec:
    """Spec for emitting a TypedDict declaration."""
    export_name: str
    fields: list[FieldSpec] = field(default_factory=list)
    bases: list[str] = field(default_factory=list)
    description: str | None = None

    @property
    def uses_class_syntax(self) -> bool:
        """Class syntax only works when every key is a plain identifier."""
        return all(is_identifier_key(field_spec.key) for field_spec in self.fields)


@dataclass(frozen=True)
class AliasSpec:
    """Spec for emitting a type alias declaration."""
    export_name: str
    type_expression: str
    description: str | None = None


# Names every generated module binds itself; exported types never take them.
MODULE_SCOPE_NAMES = frozenset(
    {"annotations", "Any", "Callable", "Literal", "Mapping", "NotRequired", "TypeAlias", "TypedDict"}
)

Declaration = TypedDictSpec | AliasSpec


@dataclass
class GeneratorState:
    """State container for one schema compilation."""
    config: TypeGeneratorConfig
    definitions: Mapping[str, Any]
    root_name: str

    used_export_names: set[str] = field(default_factory=set)
    resource_type_names: dict[str, str] = field(default_factory=dict)
    typed_dicts: dict[str, TypedDictSpec] = field(default_factory=dict)

    # Emission order: a declaration is appended once everything it depends on is.
    declarations: list[Declaration] = field(default_factory=list)
    typing_imports: set[str] = field(default_factory=set)

    def reserve_export_name(self, preferred_export_name: str) -> str:
        """
        Returns a unique export symbol name and reserves it immediately.
        This is critical so:
          - declarations use the same name
          - references elsewhere point at the same name
        """
        preferred_export_name = to_python_identifier(preferred_export_name)
        if preferred_export_name not in self.used_export_names:
            self.used_export_names.add(preferred_export_name)
            return preferred_export_name

        suffix_number = 2
        while f"{preferred_export_name}{suffix_number}" in self.used_export_names:
            suffix_number += 1

        unique_name = f"{preferred_export_name}{suffix_number}"
        self.used_export_names.add(unique_name)
        return unique_name

    def use(self, *names: str) -> None:
        self.typing_imports.update(names)


# ============================================================
# Type translation
# ============================================================

@dataclass
class SchemaToPythonTypeTranslator:
    """Translate JSON Schema nodes into Python typing expression strings."""
    state: GeneratorState

    def unknown(self) -> str:
        self.state.use("Any")
        return self.state.config.unknown_type

    def to_python_type(
        self,
        schema: Any,
        *,
        name_hint: str,
        claimed_name: str | None = None,
    ) -> str:
        """
        Translate a schema node into a Python type expression.

        Object schemas are registered as TypedDict declarations named after
        `name_hint` (or exactly `claimed_name`, when the caller already
        reserved one) and referenced by that name.
        """
        if not isinstance(schema, dict) or not schema:
            return self.unknown()

        if "$ref" in schema:
            return self.resource_type(reference_name(schema["$ref"]))

        if "const" in schema and _is_literal_value(schema["const"]):
            self.state.use("Literal")
            return f"Literal[{schema['const']!r}]"

        enum_values = schema.get("enum")
        if isinstance(enum_values, list) and enum_values and all(_is_literal_value(v) for v in enum_values):
            self.state.use("Literal")
            return "Literal[" + ", ".join(repr(value) for value in enum_values) + "]"

        for composition_keyword in ("anyOf", "oneOf"):
            members = schema.get(composition_keyword)
            if isinstance(members, list) and members:
                return self._union(
                    [
                        self.to_python_type(member, name_hint=f"{name_hint}Variant{index}")
                        for index, member in enumerate(members, start=1)
                    ]
                )

        all_of_members = schema.get("allOf")
        if isinstance(all_of_members, list) and all_of_members:
            return self._intersection(schema, all_of_members, name_hint=name_hint, claimed_name=claimed_name)

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            return self._union(
                [self._type_for(schema, single_type, name_hint=name_hint) for single_type in schema_type]
            )
        if schema_type is None and isinstance(schema.get("properties"), dict):
            schema_type = "object"

        return self._type_for(schema, schema_type, name_hint=name_hint, claimed_name=claimed_name)

    def resource_type(self, resource_name: str) -> str:
        """Return the exported type name for a named resource, compiling it on first use."""
        existing_name = self.state.resource_type_names.get(resource_name)
        if existing_name is not None:
            return existing_name

        if resource_name not in self.state.definitions:
            raise BrokenReferenceError(
                f"Reference to an undefined resource: {resource_name}.",
                reference=make_reference(resource_name),
            )

        export_name = self.state.reserve_export_name(resource_name)
        # Registered before compiling so self-references resolve to the name.
        self.state.resource_type_names[resource_name] = export_name

        resource_schema = self.state.definitions[resource_name]
        type_expression = self.to_python_type(resource_schema, name_hint=export_name, claimed_name=export_name)
        if type_expression != export_name:
            description = resource_schema.get("description") if isinstance(resource_schema, dict) else None
            self.state.declarations.append(AliasSpec(export_name, type_expression, description))
            self.state.use("TypeAlias")
        return export_name

    def _type_for(
        self,
        schema: dict[str, Any],
        schema_type: Any,
        *,
        name_hint: str,
        claimed_name: str | None = None,
    ) -> str:
        if schema_type == "object":
            return self._object_type(schema, name_hint=name_hint, claimed_name=claimed_name)
        if schema_type == "array":
            return self._array_type(schema, name_hint=name_hint)
        if isinstance(schema_type, str) and schema_type in self.state.config.primitive_type_map:
            return self.state.config.primitive_type_map[schema_type]
        return self.unknown()

    def _union(self, member_types: list[str]) -> str:
        unique_types = _dedupe(member_types)
        if self.state.config.unknown_type in unique_types:
            return self.state.config.unknown_type
        return " | ".join(unique_types)

    def _child_name_hint(self, parent_name: str, key: str) -> str:
        # Top-level entries (endpoint keys) are named after the key alone.
        if parent_name == self.state.root_name:
            return to_pascal_case(key) or parent_name
        return f"{parent_name}{to_pascal_case(key)}"

    def _register_typed_dict(self, schema: dict[str, Any], export_name: str, bases: list[str]) -> TypedDictSpec:
        spec = TypedDictSpec(
            export_name=export_name,
            bases=bases,
            description=schema.get("description") if isinstance(schema.get("description"), str) else None,
        )
        self.state.typed_dicts[export_name] = spec
        self.state.use("TypedDict")

        properties = schema.get("properties")
        raw_required = schema.get("required")
        required_names = set(raw_required) if isinstance(raw_required, list) else set()
        if isinstance(properties, dict):
            for key, property_schema in properties.items():
                type_expression = self.to_python_type(
                    property_schema,
                    name_hint=self._child_name_hint(export_name, key),
                )
                description = property_schema.get("description") if isinstance(property_schema, dict) else None
                is_required = key in required_names
                if not is_required:
                    self.state.use("NotRequired")
                spec.fields.append(
                    FieldSpec(
                        key=key,
                        type_expression=type_expression,
                        required=is_required,
                        description=description if isinstance(description, str) else None,
                    )
                )

        if spec.bases and not spec.uses_class_syntax:
            # Functional TypedDicts cannot inherit, so inline the base keys.
            spec.fields[:0] = self._inherited_fields(spec)
            spec.bases = []

        self.state.declarations.append(spec)
        return spec

    def _inherited_fields(self, spec: TypedDictSpec) -> list[FieldSpec]:
        inherited: list[FieldSpec] = []
        for base_name in spec.bases:
            base_spec = self.state.typed_dicts.get(base_name)
            if base_spec is None:
                continue
            inherited.extend(self._inherited_fields(base_spec))
            inherited.extend(base_spec.fields)
        return inherited

    def _object_type(self, schema: dict[str, Any], *, name_hint: str, claimed_name: str | None) -> str:
        properties = schema.get("properties")
        additional_properties = schema.get("additionalProperties")

        if not isinstance(properties, dict):
            if isinstance(additional_properties, dict) and additional_properties:
                value_type = self.to_python_type(additional_properties, name_hint=f"{name_hint}Value")
                return f"dict[str, {value_type}]"
            if additional_properties is not False:
                self.state.use("Any")
                return self.state.config.open_object_type

        export_name = claimed_name or self.state.reserve_export_name(name_hint)
        self._register_typed_dict(schema, export_name, bases=[])
        return export_name

    def _array_type(self, schema: dict[str, Any], *, name_hint: str) -> str:
        items = schema.get("items")
        if isinstance(items, list):
            if not items:
                return "tuple[()]"
            item_types = [
                self.to_python_type(item_schema, name_hint=f"{name_hint}Item{index}")
                for index, item_schema in enumerate(items, start=1)
            ]
            return f"tuple[{', '.join(item_types)}]"
        if isinstance(items, dict) and items:
            return f"list[{self.to_python_type(items, name_hint=f'{name_hint}Item')}]"
        self.state.use("Any")
        return "list[Any]"

    def _intersection(
        self,
        schema: dict[str, Any],
        members: list[Any],
        *,
        name_hint: str,
        claimed_name: str | None,
    ) -> str:
        """allOf: inherit from every member when all of them are TypedDicts."""
        member_types = [
            self.to_python_type(member, name_hint=f"{name_hint}Part{index}")
            for index, member in enumerate(members, start=1)
        ]
        own_properties = schema.get("properties")

        if len(member_types) == 1 and not own_properties:
            return member_types[0]

        if all(member_type in self.state.typed_dicts for member_type in member_types):
            export_name = claimed_name or self.state.reserve_export_name(name_hint)
            self._register_typed_dict(schema, export_name, bases=_dedupe(member_types))
            return export_name

        return self.unknown()


# ============================================================
# Compilation result + rendering
# ============================================================

def docstring_literal(text: str) -> str:
    """Render text as a docstring, falling back to repr() when quotes would break it."""
    if '"""' in text or "\\" in text or text.endswith('"'):
        return repr(text)
    return f'"""{text}"""'


def _comment_lines(text: str, indent: str) -> list[str]:
    return [f"{indent}# {line}".rstrip() for line in text.splitlines()]


def _field_annotation(field_spec: FieldSpec) -> str:
    if field_spec.required:
        return field_spec.type_expression
    return f"NotRequired[{field_spec.type_expression}]"


def render_typed_dict(spec: TypedDictSpec, config: TypeGeneratorConfig) -> list[str]:
    """Emit Python source for a TypedDict declaration."""
    output_lines: list[str] = []

    if spec.uses_class_syntax:
        bases = ", ".join(spec.bases) if spec.bases else "TypedDict"
        output_lines.append(f"class {spec.export_name}({bases}):")
        if spec.description:
            output_lines.append(f"    {docstring_literal(spec.description)}")
        for field_spec in spec.fields:
            if field_spec.description and config.emit_field_comments:
                output_lines.extend(_comment_lines(field_spec.description, "    "))
            output_lines.append(f"    {field_spec.key}: {_field_annotation(field_spec)}")
        if not spec.fields and not spec.description:
            output_lines.append("    pass")
    else:
        if spec.description:
            output_lines.extend(_comment_lines(spec.description, ""))
        output_lines.append(f"{spec.export_name} = TypedDict(")
        output_lines.append(f"    {spec.export_name!r},")
        output_lines.append("    {")
        for field_spec in spec.fields:
            output_lines.append(f"        {field_spec.key!r}: {_field_annotation(field_spec)!r},")
        output_lines.append("    },")
        output_lines.append(")")

    output_lines.append("")
    output_lines.append("")
    return output_lines


def render_alias(spec: AliasSpec) -> list[str]:
    """Emit Python source for a type alias; the value is quoted so forward references work."""
    output_lines: list[str] = []
    if spec.description:
        output_lines.extend(_comment_lines(spec.description, ""))
    output_lines.append(f"{spec.export_name}: TypeAlias = {spec.type_expression!r}")
    output_lines.append("")
    output_lines.append("")
    return output_lines


@dataclass(frozen=True)
class CompiledTypes:
    """The result of compiling one schema: declarations plus lookup helpers."""
    config: TypeGeneratorConfig
    root_name: str
    root_type: str
    declarations: tuple[Declaration, ...]
    typed_dicts: Mapping[str, TypedDictSpec]
    typing_imports: frozenset[str]
    used_export_names: frozenset[str]

    def field_type(self, typed_dict_name: str, key: str) -> str | None:
        """Return the type expression declared for `key` on a TypedDict."""
        spec = self.typed_dicts.get(typed_dict_name)
        if spec is None:
            return None
        for field_spec in spec.fields:
            if field_spec.key == key:
                return field_spec.type_expression
        return None

    def is_typed_dict(self, type_expression: str | None) -> bool:
        return type_expression is not None and type_expression in self.typed_dicts

    def render_imports(self, extra_names: set[str] | None = None) -> list[str]:
        """Emit the typing import line for every name the declarations use."""
        names = set(self.typing_imports) | set(extra_names or ())
        if not names:
            return []
        return [f"from typing import {', '.join(sorted(names))}"]

    def render_declarations(self) -> list[str]:
        output_lines: list[str] = []
        for declaration in self.declarations:
            if isinstance(declaration, TypedDictSpec):
                output_lines.extend(render_typed_dict(declaration, self.config))
            else:
                output_lines.extend(render_alias(declaration))
        return output_lines


def compile_schema(
    schema: dict[str, Any],
    *,
    root_name: str,
    config: TypeGeneratorConfig | None = None,
    reserved_names: Iterable[str] = (),
) -> CompiledTypes:
    """
    Compile a schema (and its `definitions`) into Python typing declarations.

    Definitions are compiled first, in declaration order, so output is
    deterministic. The root is always exported under `root_name`. Resource
    types never take a name in `reserved_names` or `MODULE_SCOPE_NAMES`;
    they get a numeric suffix instead.
    """
    config = config or TypeGeneratorConfig()
    definitions = schema.get("definitions") or {}

    state = GeneratorState(config=config, definitions=definitions, root_name=root_name)
    state.used_export_names.update(MODULE_SCOPE_NAMES, reserved_names)
    # Reserve the root name up-front (a resource may not steal it).
    root_export_name = state.reserve_export_name(root_name)
    state.root_name = root_export_name

    translator = SchemaToPythonTypeTranslator(state=state)
    for resource_name in definitions:
        translator.resource_type(resource_name)

    root_schema = {key: value for key, value in schema.items() if key != "definitions"}
    root_type = translator.to_python_type(root_schema, name_hint=root_export_name, claimed_name=root_export_name)
    if root_type != root_export_name:
        state.declarations.append(AliasSpec(root_export_name, root_type))
        state.use("TypeAlias")

    return CompiledTypes(
        config=config,
        root_name=root_export_name,
        root_type=root_type,
        declarations=tuple(state.declarations),
        typed_dicts=dict(state.typed_dicts),
        typing_imports=frozenset(state.typing_imports),
        used_export_names=frozenset(state.used_export_names),
    )


# ============================================================
# Module rendering
# ============================================================

SectionEmitter = Callable[[Any], list[str]]


def render_module(emitters: list[SectionEmitter], state: Any) -> str:
    """Run each section emitter in order and join the output into module text."""
    output_lines: list[str] = []
    for emitter in emitters:
        output_lines.extend(emitter(state))
    return "\n".join(output_lines).rstrip() + "\n"


def format_source(source: str) -> str:
    """Normalize generated source: no trailing whitespace, at most two blank lines in a row."""
    formatted_lines: list[str] = []
    blank_run = 0
    for line in source.splitlines():
        stripped_line = line.rstrip()
        if not stripped_line:
            blank_run += 1
            if blank_run > 2:
                continue
        else:
            blank_run = 0
        formatted_lines.append(stripped_line)
    return "\n".join(formatted_lines).strip("\n") + "\n"
