"""Error taxonomy for the search pipeline and user-facing messages."""


class LocksmithFinderError(Exception):
    """Base class for every error raised by the search pipeline."""

    retryable = False


class InvalidInputError(LocksmithFinderError, ValueError):
    """The search origin is not a valid latitude/longitude pair."""


class InvalidPostcodeError(LocksmithFinderError):
    """The postcode is malformed or the geocoding service found no match."""

    def __init__(self, postcode: str, reason: str = "No match found"):
        self.postcode = postcode
        self.reason = reason
        super().__init__(f"{reason}: '{postcode}'")


class GeocodingUnavailableError(LocksmithFinderError):
    """The geocoding service could not be reached or returned an error."""

    retryable = True


class DirectoryUnavailableError(LocksmithFinderError):
    """The provider directory could not be read."""

    retryable = True


def describe_search_error(error: Exception) -> str:
    """Translate a pipeline error into a message suitable for the search page.

    Args:
        error: Any exception raised while resolving, fetching or matching

    Returns:
        Markdown-formatted message for display
    """
    if isinstance(error, InvalidPostcodeError):
        return (
            f"📮 **Postcode Not Found**: We couldn't find '{error.postcode}'. "
            "Please check your postcode and try again."
        )
    if isinstance(error, GeocodingUnavailableError):
        text = str(error).lower()
        if "timeout" in text or "timed out" in text:
            return "⏱️ **Lookup Timeout**: The postcode lookup is taking too long. Please try again in a moment."
        if "rate" in text or "quota" in text:
            return "🚦 **Rate Limited**: Too many postcode lookups. Please wait a moment and try again."
        return "🔌 **Service Unavailable**: The postcode lookup service is temporarily unavailable. Please try again later."
    if isinstance(error, DirectoryUnavailableError):
        return "🗂️ **Directory Unavailable**: We couldn't load locksmith details right now. Please try again shortly."
    if isinstance(error, InvalidInputError):
        return f"❌ **Invalid Location**: {error}"
    return f"❌ **Search Error**: Something went wrong ({type(error).__name__}). Please try again."
