"""Aggregator Module - Folds module results into a run report."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from .types import (
    DiamondInfo,
    Issue,
    ModuleResult,
    RunReport,
    RunSummary,
    Status,
)


class RunAggregator:
    """Builds run summaries and reports from module results."""

    def summarize(self, results: List[ModuleResult]) -> RunSummary:
        """Count results by status and derive the overall status.

        Any failed module fails the run; otherwise any warning makes the run
        a warning; otherwise it passes.

        Args:
            results: Collected module results

        Returns:
            RunSummary for the run
        """
        passed = len([r for r in results if r.status == Status.PASS])
        failed = len([r for r in results if r.status == Status.FAIL])
        warnings = len([r for r in results if r.status == Status.WARNING])
        skipped = len([r for r in results if r.status == Status.SKIPPED])

        if failed > 0:
            overall = Status.FAIL
        elif warnings > 0:
            overall = Status.WARNING
        else:
            overall = Status.PASS

        return RunSummary(
            status=overall,
            total_checks=len(results),
            passed=passed,
            failed=failed,
            warnings=warnings,
            skipped=skipped,
        )

    def build_report(
        self,
        results: List[ModuleResult],
        diamond: DiamondInfo,
        config: Dict[str, Any],
        started_at: datetime,
        duration_ms: int,
        warnings: Optional[List[str]] = None,
    ) -> RunReport:
        """Build the final report of a completed run."""
        return RunReport(
            summary=self.summarize(results),
            modules=list(results),
            diamond=diamond,
            network=diamond.network,
            config=config,
            timestamp=started_at,
            duration_ms=max(0, duration_ms),
            recommendations=self.collect_recommendations(results),
            warnings=list(warnings or []),
        )

    def failure_report(
        self,
        diamond: DiamondInfo,
        config: Dict[str, Any],
        started_at: datetime,
        duration_ms: int,
        error: str,
        warnings: Optional[List[str]] = None,
    ) -> RunReport:
        """Build the report of a run that failed before any module ran."""
        return RunReport(
            summary=RunSummary(status=Status.FAIL, failed=1),
            modules=[],
            diamond=diamond,
            network=diamond.network,
            config=config,
            timestamp=started_at,
            duration_ms=max(0, duration_ms),
            warnings=list(warnings or []),
            error=error,
        )

    def collect_recommendations(self, results: List[ModuleResult]) -> List[str]:
        """Get distinct issue recommendations, most severe issues first."""
        issues: List[Issue] = []
        for result in results:
            issues.extend(result.issues)

        ordered = sorted(issues, key=lambda i: i.severity.weight, reverse=True)

        recommendations: List[str] = []
        seen = set()
        for issue in ordered:
            if issue.recommendation and issue.recommendation not in seen:
                seen.add(issue.recommendation)
                recommendations.append(issue.recommendation)
        return recommendations
