"""milesync - keep periodic GitLab/GitHub milestones in place.

High-level public API:

from milesync import generate_milestones, build_provider, reconcile

desired = generate_milestones(12, "weekly", provider.date_format)
active = provider.fetch_milestone_map(project_id, "active")
closed = provider.fetch_milestone_map(project_id, "closed")
report = reconcile(desired, active, closed)

The CLI (``milesync sync``) wires these pieces together with provider
detection and logging.
"""

from __future__ import annotations

from .config import SyncConfig, load_config
from .models import Milestone
from .orchestrator import sync_milestones
from .probe import detect_provider
from .provider import MilestoneProvider, build_provider
from .reconcile import compute_creation_set, compute_reactivation_set, reconcile
from .schedule import generate_milestones

# Version constant (sync manually with pyproject)
__version__ = "0.1.0"

__all__ = [
    "Milestone",
    "MilestoneProvider",
    "SyncConfig",
    "build_provider",
    "compute_creation_set",
    "compute_reactivation_set",
    "detect_provider",
    "generate_milestones",
    "load_config",
    "reconcile",
    "sync_milestones",
    "__version__",
]
