from typing import Optional, Type, TypeVar

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_form_json(model: Type[ModelT], raw: Optional[str], part_name: str) -> ModelT:
    """
    Validate a JSON document sent as a multipart form field.
    Errors surface through the regular request-validation handler.
    """
    if raw is None or not raw.strip():
        raise RequestValidationError(
            [{"type": "missing", "loc": ("body", part_name), "msg": f"Part '{part_name}' is required.", "input": None}]
        )
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        errors = []
        for err in exc.errors(include_url=False):
            err = dict(err)
            err["loc"] = ("body", *err.get("loc", ()))
            err.pop("ctx", None)
            errors.append(err)
        raise RequestValidationError(errors) from exc
