"""Local reading of the Bicep templates and their parameter files.

Only the declarations that form the contract between the scripts and the
templates are parsed: ``targetScope``, ``param`` (with ``@allowed`` and
``@description``), ``output`` and ``module`` blocks. Resource bodies are
left to the provider's deployment engine.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

_PARAM_RE = re.compile(r"^param\s+(\w+)\s+(\w+)(?:\s*=\s*(.+))?$")
_OUTPUT_RE = re.compile(r"^output\s+(\w+)\s+(\w+)\s*=\s*(.+)$")
_MODULE_RE = re.compile(r"^module\s+(\w+)\s+'([^']+)'\s*=\s*\{")
_SCOPE_RE = re.compile(r"^targetScope\s*=\s*'(\w+)'")
_DESCRIPTION_RE = re.compile(r"^@description\('(.*)'\)$")
_OUTPUT_REF_RE = re.compile(r"(\w+)\.outputs\.(\w+)")
_PARAM_KEY_RE = re.compile(r"^(\w+)\s*:")


class TemplateError(Exception):
    """A template or parameter file cannot be read."""


@dataclass
class ParamDecl:
    name: str
    type: str
    default: Any = None
    has_default: bool = False
    allowed: list[Any] | None = None
    description: str = ""

    @property
    def required(self) -> bool:
        return not self.has_default


@dataclass
class OutputDecl:
    name: str
    type: str
    expression: str = ""


@dataclass
class ModuleRef:
    symbol: str
    source: str
    params: list[str] = field(default_factory=list)


@dataclass
class TemplateContract:
    path: Path
    target_scope: str = "resourceGroup"
    params: dict[str, ParamDecl] = field(default_factory=dict)
    outputs: dict[str, OutputDecl] = field(default_factory=dict)
    modules: list[ModuleRef] = field(default_factory=list)

    def allowed_values(self, name: str) -> list[Any] | None:
        decl = self.params.get(name)
        return decl.allowed if decl else None

    def validate(self, values: Mapping[str, Any]) -> list[str]:
        """Return the problems with *values*; an empty list means valid."""
        problems: list[str] = []
        for name in values:
            if name not in self.params:
                problems.append(f"Unknown parameter '{name}'")
        for name, decl in self.params.items():
            if name not in values:
                if decl.required:
                    problems.append(f"Missing required parameter '{name}'")
                continue
            value = values[name]
            type_problem = _check_type(decl, value)
            if type_problem:
                problems.append(type_problem)
            elif decl.allowed is not None and value not in decl.allowed:
                allowed = ", ".join(str(v) for v in decl.allowed)
                problems.append(
                    f"Parameter '{name}' value '{value}' is not one of: {allowed}"
                )
        return problems

    def module_path(self, ref: ModuleRef) -> Path:
        return (self.path.parent / ref.source).resolve()


def _check_type(decl: ParamDecl, value: Any) -> str:
    expected: dict[str, type | tuple[type, ...]] = {
        "string": str,
        "int": int,
        "bool": bool,
        "array": list,
        "object": dict,
    }
    py_type = expected.get(decl.type)
    if py_type is None:
        return ""
    # bool is an int subclass
    if decl.type == "int" and isinstance(value, bool):
        return f"Parameter '{decl.name}' expects int, got bool"
    if not isinstance(value, py_type):
        return f"Parameter '{decl.name}' expects {decl.type}, got {type(value).__name__}"
    return ""


def _literal(text: str) -> tuple[Any, bool]:
    """Parse a Bicep literal; returns ``(value, is_literal)``."""
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text[1:-1], True
    if text in ("true", "false"):
        return text == "true", True
    if re.fullmatch(r"-?\d+", text):
        return int(text), True
    return text, False


def _strip_comment(line: str) -> str:
    in_string = False
    for idx, ch in enumerate(line):
        if ch == "'":
            in_string = not in_string
        elif not in_string and line.startswith("//", idx):
            return line[:idx]
    return line


def parse_template(path: str | Path) -> TemplateContract:
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as exc:
        raise TemplateError(f"Cannot read template {path}: {exc}") from exc

    contract = TemplateContract(path=path)
    lines = [_strip_comment(raw).strip() for raw in text.splitlines()]

    description = ""
    allowed: list[Any] | None = None
    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        if not line:
            continue

        m = _SCOPE_RE.match(line)
        if m:
            contract.target_scope = m.group(1)
            continue

        m = _DESCRIPTION_RE.match(line)
        if m:
            description = m.group(1)
            continue

        if line.startswith("@allowed("):
            body = line[len("@allowed("):]
            while not body.rstrip().endswith(")") and i < len(lines):
                body += " " + lines[i]
                i += 1
            allowed = _parse_allowed(body.rstrip()[:-1], path)
            continue

        m = _PARAM_RE.match(line)
        if m:
            name, type_, default_text = m.groups()
            decl = ParamDecl(name=name, type=type_, description=description, allowed=allowed)
            if default_text is not None:
                decl.default, _ = _literal(default_text)
                decl.has_default = True
            contract.params[name] = decl
            description, allowed = "", None
            continue

        m = _OUTPUT_RE.match(line)
        if m:
            name, type_, expr = m.groups()
            contract.outputs[name] = OutputDecl(name=name, type=type_, expression=expr.strip())
            description = ""
            continue

        m = _MODULE_RE.match(line)
        if m:
            ref = ModuleRef(symbol=m.group(1), source=m.group(2))
            i = _parse_module_body(lines, i, ref)
            contract.modules.append(ref)
            description = ""
            continue

        if not line.startswith("@"):
            description, allowed = "", None

    logger.debug(
        "Parsed %s: scope=%s, %d params, %d outputs, %d modules",
        path.name, contract.target_scope, len(contract.params),
        len(contract.outputs), len(contract.modules),
    )
    return contract


def _parse_allowed(body: str, path: Path) -> list[Any]:
    body = body.strip()
    if not (body.startswith("[") and body.endswith("]")):
        raise TemplateError(f"{path}: malformed @allowed decorator: {body!r}")
    items = re.findall(r"'[^']*'|-?\d+|true|false", body[1:-1])
    return [_literal(item)[0] for item in items]


def _parse_module_body(lines: list[str], i: int, ref: ModuleRef) -> int:
    """Collect the top-level keys of the module's ``params`` block."""
    depth = 1
    params_depth: int | None = None
    while i < len(lines) and depth > 0:
        line = lines[i]
        i += 1
        if params_depth is not None and depth == params_depth:
            m = _PARAM_KEY_RE.match(line)
            if m:
                ref.params.append(m.group(1))
        if line.startswith("params:") and line.endswith("{"):
            params_depth = depth + 1
        depth += line.count("{") - line.count("}")
        if params_depth is not None and depth < params_depth:
            params_depth = None
    return i


def check_module_contract(parent: TemplateContract, child: TemplateContract, ref: ModuleRef) -> list[str]:
    """Check that *parent* wires *child* (called as *ref*) consistently."""
    problems: list[str] = []
    for name in ref.params:
        if name not in child.params:
            problems.append(f"Module '{ref.symbol}' passes unknown parameter '{name}'")
    for name, decl in child.params.items():
        if decl.required and name not in ref.params:
            problems.append(f"Module '{ref.symbol}' does not pass required parameter '{name}'")
    for output in parent.outputs.values():
        for symbol, attr in _OUTPUT_REF_RE.findall(output.expression):
            if symbol == ref.symbol and attr not in child.outputs:
                problems.append(
                    f"Output '{output.name}' reads missing module output '{ref.symbol}.{attr}'"
                )
    for name in ref.params:
        parent_decl, child_decl = parent.params.get(name), child.params.get(name)
        if parent_decl and child_decl and parent_decl.allowed != child_decl.allowed:
            problems.append(f"Parameter '{name}' has different allow-lists in {parent.path.name} and {child.path.name}")
    return problems


def check_template_tree(path: str | Path) -> list[str]:
    """Parse *path* and every module it references; return wiring problems."""
    parent = parse_template(path)
    problems: list[str] = []
    for ref in parent.modules:
        child_path = parent.module_path(ref)
        if not child_path.is_file():
            problems.append(f"Module '{ref.symbol}' source not found: {ref.source}")
            continue
        problems.extend(check_module_contract(parent, parse_template(child_path), ref))
    return problems


class ParameterValue(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: Any = None
    reference: dict[str, Any] | None = None


class ParameterFile(BaseModel):
    """ARM ``deploymentParameters`` document."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    schema_: str = Field(alias="$schema")
    content_version: str = Field(alias="contentVersion")
    parameters: dict[str, ParameterValue] = Field(default_factory=dict)

    def values(self) -> dict[str, Any]:
        return {k: p.value for k, p in self.parameters.items() if p.reference is None}


def load_parameter_file(path: str | Path) -> ParameterFile:
    path = Path(path)
    try:
        raw = json.loads(path.read_text())
    except OSError as exc:
        raise TemplateError(f"Cannot read parameter file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise TemplateError(f"{path} is not valid JSON: {exc}") from exc
    try:
        return ParameterFile.model_validate(raw)
    except ValidationError as exc:
        raise TemplateError(f"{path} is not a deployment parameters file: {exc}") from exc
