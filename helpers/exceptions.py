from typing import Optional


class UAMError(Exception):
    """Base class for every error raised by the challenge pipeline."""


class SettingsError(UAMError):
    pass


class EvaluationError(UAMError):
    """The restricted evaluator could not run a snippet to completion."""


class ChallengeError(UAMError):
    pass


class ExtractionError(ChallengeError):
    """The challenge page does not match the expected template."""


class FieldNotFound(ExtractionError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Field '{name}' not found in challenge page")


class ActionMalformed(ExtractionError):
    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Form action is not of the form <path>?<key>=<value>: {action!r}")


class UnrecognizedScriptFormat(ExtractionError):
    pass


class ScriptEvaluationFailed(ExtractionError):
    pass


class UnsupportedChallengeError(ChallengeError):
    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url
        message = "Captcha challenge detected, it can't be solved automatically"
        if url:
            message = f"{message} ({url})"
        super().__init__(message)


class ChallengeCancelled(ChallengeError):
    pass
