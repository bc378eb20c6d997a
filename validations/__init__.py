from .automation_validator import parse_and_validate_automation

__all__ = ["parse_and_validate_automation"]
