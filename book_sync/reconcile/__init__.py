from .driver import next_offset, reconcile_batch
from .plan import generate_sync_plan, write_plan
from .report import RunReport, print_summary, success_rate, write_report
from .strategies import DirectApplyStrategy, DryRunStrategy, OutputStrategy, PlanEmissionStrategy

__all__ = [
    "DirectApplyStrategy",
    "DryRunStrategy",
    "OutputStrategy",
    "PlanEmissionStrategy",
    "RunReport",
    "generate_sync_plan",
    "next_offset",
    "print_summary",
    "reconcile_batch",
    "success_rate",
    "write_plan",
    "write_report",
]
