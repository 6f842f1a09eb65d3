""" Generators package initialization."""

from .analysis import ResumeAnalyzer  # noqa: F401
from .catalog import GENERATION_CATALOG, CatalogEntry, ModelTier, lookup, render_output  # noqa: F401
from .orchestrator import GenerationOrchestrator, ensure_unlocked  # noqa: F401
from .refine import QuickAction, RefinementEngine  # noqa: F401
from .score import ScoreEstimator  # noqa: F401
from .session import JobSnapshot, OrchestratorContext  # noqa: F401
