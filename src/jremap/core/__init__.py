"""Core module containing binding models and configuration."""

from jremap.core.config import RemapperConfig, get_config, reload_config
from jremap.core.models import (
    Binding,
    BindingKind,
    MethodBinding,
    RenameEdit,
    TypeBinding,
    VariableBinding,
)

__all__ = [
    "Binding",
    "BindingKind",
    "MethodBinding",
    "RemapperConfig",
    "RenameEdit",
    "TypeBinding",
    "VariableBinding",
    "get_config",
    "reload_config",
]
