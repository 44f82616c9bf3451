"""JSON serialization for plan results and run summaries."""

from health_targets.domain.jobs import RunSummary
from health_targets.domain.plans import PlanResult
from health_targets.domain.targets import ComputedTargets, Explanation


def serialize_plan_result(result: PlanResult) -> dict[str, object]:
    """Return the API representation of a plan result."""
    record = result.record
    why = result.why_it_works
    return {
        "planId": str(record.id),
        "userId": str(record.user_id),
        "computedAt": record.computed_at.isoformat(),
        "targets": serialize_targets(record.targets),
        "previousTargets": serialize_targets(record.previous_targets)
        if record.previous_targets
        else None,
        "changeReason": record.change_reason,
        "recomputed": record.recomputed,
        "source": result.source.value,
        "whyItWorks": {
            "bmr": _serialize_explanation(why.bmr),
            "tdee": _serialize_explanation(why.tdee),
            "calorieTarget": _serialize_explanation(why.calorie_target),
            "proteinTarget": _serialize_explanation(why.protein_target),
            "waterTarget": _serialize_explanation(why.water_target),
            "timeline": _serialize_explanation(why.timeline),
        },
    }


def serialize_targets(targets: ComputedTargets) -> dict[str, object]:
    """Return the API representation of computed targets."""
    return {
        "bmr": targets.bmr,
        "tdee": targets.tdee,
        "calorieTarget": targets.calorie_target,
        "proteinTarget": targets.protein_target,
        "waterTarget": targets.water_target,
        "weeklyRate": targets.weekly_rate,
        "estimatedWeeks": targets.estimated_weeks,
        "projectedDate": targets.projected_date.isoformat()
        if targets.projected_date
        else None,
    }


def serialize_run_summary(summary: RunSummary) -> dict[str, object]:
    """Return the API representation of a recompute run."""
    return {
        "id": str(summary.id),
        "status": summary.status.value,
        "startedAt": summary.started_at.isoformat(),
        "finishedAt": summary.finished_at.isoformat()
        if summary.finished_at
        else None,
        "totalUsers": summary.total_users,
        "successCount": summary.success_count,
        "errorCount": summary.error_count,
        "updates": [
            {
                "userId": str(update.user_id),
                "previousCalories": update.previous_calorie_target,
                "newCalories": update.new_calorie_target,
                "previousProtein": update.previous_protein_target,
                "newProtein": update.new_protein_target,
                "reason": update.reason,
            }
            for update in summary.updates
        ],
        "error": summary.error,
    }


def _serialize_explanation(explanation: Explanation) -> dict[str, object]:
    return {
        "title": explanation.title,
        "explanation": explanation.explanation,
        "metric": explanation.metric,
    }
