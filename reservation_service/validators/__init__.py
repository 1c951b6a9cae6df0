from .config_validator import validate_config

__all__ = ['validate_config']
