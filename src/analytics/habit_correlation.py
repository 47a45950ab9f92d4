"""Cross-habit relationships: conditional dependencies, synergies, triggers."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from constants import (
    DEPENDENCY_MIN_LIFT,
    DEPENDENCY_MIN_PROBABILITY,
    MIN_DEPENDENCY_SOURCE_DAYS,
    SYNERGY_MIN_CATEGORY_DAYS,
    SYNERGY_MIN_STRENGTH,
)
from analytics.habit_analyzer import completion_days
from insight_models import Habit, HabitCompletion


def detect_habit_dependencies(habits: Sequence[Habit],
                              completions: Sequence[HabitCompletion]) -> List[Dict[str, Any]]:
    """P(to_habit done | from_habit done) for every ordered pair.

    ``strength`` and ``base_rate`` are percentages.  A pair is ``leads_to``
    when the conditional probability beats the to-habit's base rate by 30%
    (relative) and is itself above 50%.  Source habits need >= 3 active days.
    """
    days_by_habit = completion_days(completions)
    all_days = set()
    for days in days_by_habit.values():
        all_days |= days
    if not all_days:
        return []

    habit_ids = []
    for h in habits:
        if h.id in days_by_habit and h.id not in habit_ids:
            habit_ids.append(h.id)

    deps = []
    for src in habit_ids:
        src_days = days_by_habit[src]
        if len(src_days) < MIN_DEPENDENCY_SOURCE_DAYS:
            continue
        for dst in habit_ids:
            if dst == src:
                continue
            dst_days = days_by_habit[dst]
            conditional = len(src_days & dst_days) / len(src_days)
            base = len(dst_days) / len(all_days)
            leads = conditional > DEPENDENCY_MIN_PROBABILITY and conditional >= base * DEPENDENCY_MIN_LIFT
            deps.append({
                "from_habit": src,
                "to_habit": dst,
                "strength": conditional * 100,
                "base_rate": base * 100,
                "relationship": "leads_to" if leads else "independent",
            })
    deps.sort(key=lambda d: d["strength"], reverse=True)
    return deps


def find_habit_synergies(habits: Sequence[Habit],
                         completions: Sequence[HabitCompletion]) -> List[Dict[str, Any]]:
    """Mutually reinforcing habit pairs, highest synergy score first."""
    deps = {
        (d["from_habit"], d["to_habit"]): d["strength"]
        for d in detect_habit_dependencies(habits, completions)
    }
    days_by_habit = completion_days(completions)

    synergies = []
    for i, h1 in enumerate(habits):
        for h2 in habits[i + 1:]:
            if h1.id == h2.id:
                continue
            forward = deps.get((h1.id, h2.id), 0.0)
            backward = deps.get((h2.id, h1.id), 0.0)
            if forward > SYNERGY_MIN_STRENGTH and backward > SYNERGY_MIN_STRENGTH:
                score = round((forward + backward) / 2)
                reason = "mutual"
            else:
                shared = len(days_by_habit.get(h1.id, set()) & days_by_habit.get(h2.id, set()))
                if not (h1.category and h1.category == h2.category
                        and shared >= SYNERGY_MIN_CATEGORY_DAYS):
                    continue
                score = min(shared * 10, 100)
                reason = "category"
            synergies.append({
                "habit1": h1.id,
                "habit2": h2.id,
                "synergy_score": int(score),
                "reason": reason,
            })
    synergies.sort(key=lambda s: s["synergy_score"], reverse=True)
    return synergies


def detect_trigger_habits(habits: Sequence[Habit],
                          completions: Sequence[HabitCompletion]) -> List[Dict[str, Any]]:
    """Keystone habits whose completion leads to at least two other habits."""
    edges: Dict[str, List[Dict[str, Any]]] = {}
    for d in detect_habit_dependencies(habits, completions):
        if d["relationship"] == "leads_to":
            edges.setdefault(d["from_habit"], []).append(d)

    triggers = []
    for habit_id, out in edges.items():
        if len(out) < 2:
            continue
        triggers.append({
            "habit_id": habit_id,
            "triggers": [d["to_habit"] for d in out],
            "avg_strength": sum(d["strength"] for d in out) / len(out),
        })
    triggers.sort(key=lambda t: (len(t["triggers"]), t["avg_strength"]), reverse=True)
    return triggers
