"""
Error taxonomy for the question-answering service.

Every error carries the HTTP status it maps to and the message that is safe
to show to a client. Internal details stay in the exception text and logs.
"""


class DocQAError(Exception):
    """Base class for service errors."""

    status_code: int = 500
    public_message: str = "Failed to generate answer."


class ValidationError(DocQAError):
    """A required request input is missing."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.public_message = message


class NoActiveCorpusError(DocQAError):
    """No document has been indexed yet."""

    status_code = 400
    public_message = "No vector store is active. Please upload a PDF first."

    def __init__(self, message: str = public_message):
        super().__init__(message)


class StoreNotInitializedError(DocQAError):
    """The embedding store was queried without an active collection."""

    def __init__(self, message: str = "Vector store is not initialized"):
        super().__init__(message)


class BackendUnavailableError(DocQAError):
    """A model backend could not be reached or prepared."""


class GenerationFailedError(DocQAError):
    """The generation backend answered with a failure."""


class IngestionError(DocQAError):
    """An uploaded document could not be indexed."""

    public_message = "Error processing file."
