"""Request validation package."""

from mindmoney.validation.validator import parse_body, parse_date_param

__all__ = ["parse_body", "parse_date_param"]
