from .loader import ConfigError, load_config, parse_config
from .models import DataConfig, ScriptConfig, StepDecl

__all__ = ["ConfigError", "DataConfig", "ScriptConfig", "StepDecl", "load_config", "parse_config"]
