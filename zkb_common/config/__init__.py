"""Configuration helpers shared across packages."""

from zkb_common.config.env import parse_bool_env, parse_float_env

__all__ = ["parse_bool_env", "parse_float_env"]
