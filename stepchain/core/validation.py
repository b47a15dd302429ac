"""
StepChain Payload Contracts

Pydantic-based validation for the payload flowing between steps. A step may
declare an output model with `chain.then(step, output_model=Model)`; the value
it resolves with is validated before it becomes the chain payload. A chain may
also validate its initial payload up front via `Chain.create(input_model=...)`.
"""

import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from stepchain.core.errors import ChainError, ErrorKind

logger = logging.getLogger(__name__)

__all__ = [
    "ContractValidationError",
    "validate_payload",
    "is_pydantic_model",
]


class ContractValidationError(ChainError):
    """
    A payload failed its declared model.

    Attributes:
        step_name: Step that produced the payload ("<input>" for the initial payload)
        contract_type: "input" or "output"
        model_name: Name of the Pydantic model
        errors: Pydantic error dicts (loc, msg, type, ...)
        raw_value: repr of the rejected value, truncated
    """

    kind = ErrorKind.CONTRACT_VIOLATION
    MAX_LISTED_ERRORS = 5

    def __init__(
        self,
        step_name: str,
        contract_type: str,
        model_name: str,
        errors: list[dict[str, Any]],
        raw_value: Any = None,
    ):
        self.step_name = step_name
        self.contract_type = contract_type
        self.model_name = model_name
        self.errors = errors
        self.raw_value = raw_value
        super().__init__(
            f"{model_name} rejected the {contract_type} of step '{step_name}' "
            f"({len(errors)} error(s)):\n{_describe_errors(errors, self.MAX_LISTED_ERRORS)}"
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "step_name": self.step_name,
                "contract_type": self.contract_type,
                "model_name": self.model_name,
                "errors": [
                    {"loc": list(err.get("loc", [])), "msg": err.get("msg", "")}
                    for err in self.errors
                ],
            }
        )
        return data


def validate_payload(
    step_name: str,
    model: type[BaseModel],
    value: Any,
    contract_type: str = "output",
) -> BaseModel:
    """
    Validate a payload against a Pydantic model.

    Args:
        step_name: Name of the step (for error messages)
        model: Pydantic model class to validate against
        value: The payload to validate
        contract_type: "input" for the initial payload, "output" for step results

    Returns:
        Validated model instance (instances of the model pass through untouched)

    Raises:
        ContractValidationError: If validation fails
    """
    if isinstance(value, model):
        return value

    try:
        return model.model_validate(value)
    except ValidationError as e:
        logger.warning(f"{model.__name__} rejected {contract_type} of '{step_name}': {e.error_count()} error(s)")
        raise ContractValidationError(
            step_name=step_name,
            contract_type=contract_type,
            model_name=model.__name__,
            errors=e.errors(include_url=False),
            raw_value=_truncate_value(value),
        ) from e


def _truncate_value(value: Any, max_length: int = 200) -> str:
    """Truncate a value for safe logging/error messages."""
    value_str = repr(value)
    if len(value_str) > max_length:
        return value_str[:max_length] + "..."
    return value_str


def is_pydantic_model(cls: type | None) -> bool:
    """Check if a class is a Pydantic model."""
    if cls is None:
        return False
    try:
        return issubclass(cls, BaseModel)
    except TypeError:
        return False


def _describe_errors(errors: list[dict[str, Any]], limit: int) -> str:
    lines = [
        f"  {'.'.join(str(part) for part in err.get('loc', ())) or '<root>'}: {err.get('msg', '?')}"
        for err in errors[:limit]
    ]
    if len(errors) > limit:
        lines.append(f"  (+{len(errors) - limit} more)")
    return "\n".join(lines)
