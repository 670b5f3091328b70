from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, field_validator

# Repository name (or "*") -> one command string or an ordered list of lines
TaskTemplateSet = Dict[str, Union[str, List[str]]]


class FailurePolicy(str, Enum):
    """What the runner does with the remaining tasks after one fails"""

    CONTINUE = "continue"
    ABORT = "abort"


class TaskContext(BaseModel):
    """Values available to task templates through placeholders"""

    repository: str = ""
    kind: str = ""
    ssh_url: str = ""
    http_url: str = ""
    user: str = ""
    ref: str = ""
    commit_id: str = ""
    commit_timestamp: str = ""
    commit_message: str = ""
    remote_address: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _stringify(cls, value):
        return "" if value is None else str(value)

    def placeholders(self) -> Dict[str, str]:
        return {
            "%r": self.repository,
            "%k": self.kind,
            "%g": self.ssh_url,
            "%h": self.http_url,
            "%u": self.user,
            "%b": self.ref,
            "%i": self.commit_id,
            "%t": self.commit_timestamp,
            "%m": self.commit_message,
            "%s": self.remote_address,
        }


class TaskResult(BaseModel):
    """Outcome of one executed task script"""

    index: int
    script: str
    success: bool
    exit_code: Optional[int] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    error: Optional[str] = None
