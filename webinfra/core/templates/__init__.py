"""Bicep template contract and parameter files."""

from __future__ import annotations

from .contract import (
    ModuleRef,
    OutputDecl,
    ParamDecl,
    ParameterFile,
    TemplateContract,
    TemplateError,
    check_module_contract,
    check_template_tree,
    load_parameter_file,
    parse_template,
)

__all__ = [
    "ModuleRef",
    "OutputDecl",
    "ParamDecl",
    "ParameterFile",
    "TemplateContract",
    "TemplateError",
    "check_module_contract",
    "check_template_tree",
    "load_parameter_file",
    "parse_template",
]
