"""Serializable job parameters"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from tenancy.shared.utils.generators import generate_cuid


@dataclass
class JobParams:
    """
    Everything a worker needs to run one job.

    Plain data only: the worker resolves services for the job at execution
    time, so nothing here holds a live object.
    """

    job_type: str
    tenant_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    initiating_user_id: str | None = None
    job_id: str = field(default_factory=generate_cuid)
    attempts: int = 0
    dedup_key: str | None = None
    not_before: float | None = None  # epoch seconds; set when a retry is delayed

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | bytes) -> "JobParams":
        data = json.loads(raw)
        return cls(**data)
