"""Educational explanations for computed targets."""

from health_targets.domain.profile import PlanInputs, PrimaryGoal
from health_targets.domain.targets import ComputedTargets, Explanation, WhyItWorks
from health_targets.services.metrics import (
    ACTIVITY_MULTIPLIERS,
    PROTEIN_PER_KG,
    WATER_ML_PER_KG,
)

_PROTEIN_NOTES = {
    PrimaryGoal.LOSE_WEIGHT: (
        "During weight loss, high protein prevents muscle loss and keeps you "
        "feeling full."
    ),
    PrimaryGoal.GAIN_MUSCLE: (
        "For muscle building, protein provides the amino acids needed for "
        "muscle protein synthesis and recovery."
    ),
    PrimaryGoal.MAINTAIN: (
        "Adequate protein supports muscle maintenance, satiety, and overall "
        "health."
    ),
}


def build_why_it_works(targets: ComputedTargets, inputs: PlanInputs) -> WhyItWorks:
    """Explain each target in user-facing language."""
    multiplier = ACTIVITY_MULTIPLIERS[inputs.activity_level]
    grams_per_kg = PROTEIN_PER_KG[inputs.primary_goal]
    deficit = targets.tdee - targets.calorie_target
    goal_label = _label(inputs.primary_goal)

    return WhyItWorks(
        bmr=Explanation(
            title="Your Basal Metabolic Rate (BMR)",
            explanation=(
                f"Your BMR is {targets.bmr} calories, the energy your body burns "
                "at complete rest. It is calculated with the Mifflin-St Jeor "
                "equation."
            ),
            metric=targets.bmr,
        ),
        tdee=Explanation(
            title="Your Total Daily Energy Expenditure (TDEE)",
            explanation=(
                f"Your TDEE is {targets.tdee} calories. Your BMR is multiplied "
                f"by {multiplier} to account for your "
                f"{_label(inputs.activity_level)} lifestyle."
            ),
            metric=multiplier,
        ),
        calorie_target=Explanation(
            title="Your Daily Calorie Target",
            explanation=_calorie_copy(goal_label, deficit, targets),
            metric=deficit,
        ),
        protein_target=Explanation(
            title="Your Daily Protein Target",
            explanation=(
                f"You need {targets.protein_target}g of protein daily "
                f"({grams_per_kg}g per kg of body weight). "
                f"{_PROTEIN_NOTES[inputs.primary_goal]}"
            ),
            metric=grams_per_kg,
        ),
        water_target=Explanation(
            title="Your Daily Hydration Target",
            explanation=(
                f"Aim for {targets.water_target}ml of water daily "
                f"({WATER_ML_PER_KG}ml per kg)."
            ),
            metric=WATER_ML_PER_KG,
        ),
        timeline=Explanation(
            title="Your Projected Timeline",
            explanation=_timeline_copy(goal_label, targets),
            metric=targets.weekly_rate,
        ),
    )


def _calorie_copy(goal_label: str, deficit: int, targets: ComputedTargets) -> str:
    if deficit > 0:
        return (
            f"To {goal_label}, you need a {deficit} calorie deficit. At this rate "
            f"you'll lose approximately {abs(targets.weekly_rate)} kg per week."
        )
    if deficit < 0:
        return (
            f"To {goal_label}, you need a {abs(deficit)} calorie surplus. At this "
            f"rate you'll gain approximately {targets.weekly_rate} kg per week."
        )
    return (
        f"To {goal_label}, you'll eat at maintenance "
        f"({targets.calorie_target} calories)."
    )


def _timeline_copy(goal_label: str, targets: ComputedTargets) -> str:
    if targets.estimated_weeks:
        return (
            f"Based on a {abs(targets.weekly_rate)} kg per week rate, you'll reach "
            f"your goal in approximately {targets.estimated_weeks} weeks."
        )
    return (
        f"Since you're focused on {goal_label}, there's no specific weight "
        "timeline."
    )


def _label(value: str) -> str:
    return value.replace("_", " ")
