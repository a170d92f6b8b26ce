from .schema_validator import SchemaCheck, missing_required_params, validate_input, validate_output

__all__ = ["SchemaCheck", "missing_required_params", "validate_input", "validate_output"]
