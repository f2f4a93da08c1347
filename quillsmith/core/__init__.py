"""Pipeline orchestration and analytics."""
from .analytics import CostSummary, ROIAnalysis, get_cost_summary, get_roi_analysis
from .pipeline import BatchResult, ContentPipeline, PipelineStatus, WorkflowResult, WorkflowTask

__all__ = [
    "ContentPipeline",
    "BatchResult",
    "PipelineStatus",
    "WorkflowResult",
    "WorkflowTask",
    "CostSummary",
    "ROIAnalysis",
    "get_cost_summary",
    "get_roi_analysis",
]
