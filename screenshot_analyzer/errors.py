BILLING_URL = "https://platform.openai.com/account/billing"


class ExtractionError(RuntimeError):
    """Terminal failure of a remote extraction call."""


class QuotaExceededError(ExtractionError):
    """The provider reports that the account's usage allowance is used up.

    Raised on the first occurrence, without retrying; batch callers stop
    sending further requests for the rest of the run.
    """

    def __init__(self, detail: str = ""):
        msg = f"OpenAI API quota exceeded. Please check your billing details at {BILLING_URL}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)
        self.detail = detail


class ExtractionTimeoutError(ExtractionError):
    """A single attempt exceeded its deadline and no retries were left."""
