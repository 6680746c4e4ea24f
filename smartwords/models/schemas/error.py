from smartwords.models.schemas.base import BaseSchemaModel


class ErrorBody(BaseSchemaModel):
    code: str
    message: str


class ErrorResponse(BaseSchemaModel):
    error: ErrorBody
