"""HTTP clients for the analysis workflow and the verification backend.

- WorkflowClient: job submission and status queries
- WorkflowPoller: drives a job to a terminal state
- VerificationClient: one-time email code exchange
"""

from bidflow.clients.verification_client import VerificationClient
from bidflow.clients.workflow_client import WorkflowClient
from bidflow.clients.workflow_poller import PollState, WorkflowPoller

__all__ = [
    "VerificationClient",
    "WorkflowClient",
    "WorkflowPoller",
    "PollState",
]
