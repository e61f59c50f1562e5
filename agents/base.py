"""
Agent base
NextMic Speaker Opportunity Pipeline

Scrapers, the ranking agent and the content generators share one shape:
`run()` does the work and raises; `execute()` is for batch and CLI callers
that want an AgentResult instead of an exception.

Expected failures (pipeline rule violations, LLM gateway errors) are logged
as one line. Anything else is logged with its traceback. Database errors are
re-raised so the caller's session scope rolls the transaction back.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from agents.llm import LLMError
from models import PipelineError

EXPECTED_FAILURES = (PipelineError, LLMError)


@dataclass
class AgentResult:
    agent_name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        """One line for CLI output, e.g. `OpportunityRankingAgent ok in 2.4s`."""
        took = f" in {self.duration_seconds:.1f}s" if self.duration_seconds is not None else ""
        if self.success:
            return f"{self.agent_name} ok{took}"
        return f"{self.agent_name} failed{took}: {self.error_type}: {self.error}"


class Agent(ABC):
    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"agent.{name}")

    @abstractmethod
    def run(self, *args, **kwargs) -> Any:
        raise NotImplementedError

    def execute(self, *args, **kwargs) -> AgentResult:
        started_at = datetime.utcnow()
        try:
            data = self.run(*args, **kwargs)
        except SQLAlchemyError:
            raise
        except EXPECTED_FAILURES as e:
            self.logger.warning(f"{self.name} failed: {type(e).__name__}: {e}")
            return self._result(started_at, error=e)
        except Exception as e:
            self.logger.exception(f"{self.name} crashed: {e}")
            return self._result(started_at, error=e)

        result = self._result(started_at, data=data)
        self.logger.info(result.summary())
        return result

    def _result(self, started_at: datetime, data: Any = None, error: Optional[Exception] = None) -> AgentResult:
        return AgentResult(
            agent_name=self.name,
            success=error is None,
            data=data,
            error=str(error) if error is not None else None,
            error_type=type(error).__name__ if error is not None else None,
            started_at=started_at,
            finished_at=datetime.utcnow(),
        )
