import enum
from dataclasses import dataclass
from typing import List, Tuple


class ResponseClassification(enum.Enum):
    PASSTHROUGH = "passthrough"
    IUAM_CHALLENGE = "iuam_challenge"
    UNSUPPORTED_CHALLENGE = "unsupported_challenge"


@dataclass(frozen=True)
class ChallengePage:
    """A buffered IUAM response: the scheme and host it was served for, plus its markup."""
    scheme: str
    host: str
    body: str


@dataclass(frozen=True)
class FormParameters:
    """Values the follow-up request must carry, all taken verbatim from the page."""
    r: str
    jschl_vc: str
    pass_: str
    jschl_answer: str
    action_path: str
    action_query_key: str
    action_query_value: str


    def query_params(self) -> List[Tuple[str, str]]:
        return [
            (self.action_query_key, self.action_query_value),
            ("jschl_vc", self.jschl_vc),
            ("pass", self.pass_),
            ("jschl_answer", self.jschl_answer),
        ]


    def form_data(self) -> List[Tuple[str, str]]:
        return [
            ("r", self.r),
            ("jschl_vc", self.jschl_vc),
            ("pass", self.pass_),
            ("jschl_answer", self.jschl_answer),
        ]
