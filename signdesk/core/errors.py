"""Error taxonomy shared by the document services.

Services raise these; the HTTP layer translates them into status codes.
"""


class SignDeskError(Exception):
    default_detail = "Request could not be completed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(SignDeskError):
    default_detail = "Document not found"


class Forbidden(SignDeskError):
    default_detail = "Not authorized to perform this operation"


class InvalidPayload(SignDeskError):
    default_detail = "Invalid signature payload"


class MissingField(InvalidPayload):
    default_detail = "Missing required field"


class UnsupportedFormat(SignDeskError):
    default_detail = "Unsupported signature image format. Only PNG and JPEG are supported."


class PageOutOfRange(SignDeskError):
    default_detail = "Page number is out of bounds"


class PersistenceFailure(SignDeskError):
    default_detail = "Failed to store the signed document"


class CorruptSource(SignDeskError):
    default_detail = "Stored PDF could not be loaded"


class InvalidStatus(SignDeskError):
    default_detail = "Operation not allowed in the current document status"


class Conflict(SignDeskError):
    default_detail = "Conflicting request"
