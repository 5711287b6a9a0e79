"""Load-order analysis, suggestions and topological order synthesis."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .errors import OrderCycleError
from .models import Module, ModuleIndex, index_modules
from .order_models import (
    CyclePolicy,
    LoadOrderEntry,
    OptimizationOptions,
    OptimizationResult,
    OptimizationSuggestion,
    SuggestionConfidence,
    SuggestionReason,
    SuggestionType,
)

logger = logging.getLogger(__name__)

CRITICAL_PENALTY = 20
WARNING_PENALTY = 5

# (module id, is selected) in current load order.
OrderItem = Tuple[str, bool]
CycleBreak = Tuple[str, str]


def compute_health_score(critical_issues: int, warnings: int) -> int:
    return max(0, 100 - critical_issues * CRITICAL_PENALTY - warnings * WARNING_PENALTY)


def considered_modules(
    catalog: ModuleIndex,
    load_order: Iterable[OrderItem],
    options: OptimizationOptions,
) -> List[Module]:
    """Modules from the load order that take part in the analysis, in order."""
    result = []
    for module_id, selected in load_order:
        module = catalog.get(module_id)
        if module is None:
            continue
        if options.enabled_only and not selected:
            continue
        if not options.include_native and module.is_native:
            continue
        result.append(module)
    return result


def analyze_load_order(
    modules: Sequence[Module],
    load_order: Sequence[OrderItem],
    options: Optional[OptimizationOptions] = None,
) -> OptimizationResult:
    """Check the current order against dependency and load hints.

    ``suggested_position`` is the index the module should end up at once it
    is moved, within the order of considered modules. It is counted after the
    module is taken out, so moving after a dependency at ``dep_pos`` gives
    ``dep_pos`` (``dep_pos + 1`` before removal). Ids referenced by a
    module but absent from the considered order are not checked.
    """
    options = options or OptimizationOptions()
    result = OptimizationResult()
    if not load_order:
        result.summary = "No modules loaded."
        return result

    catalog = index_modules(list(modules))
    enabled = considered_modules(catalog, load_order, options)
    positions: Dict[str, int] = {m.id: i for i, m in enumerate(enabled)}

    for module in enabled:
        current = positions[module.id]

        for dep_id in module.dependency_ids():
            dep_pos = positions.get(dep_id)
            if dep_pos is None or dep_pos <= current:
                continue
            result.suggestions.append(
                OptimizationSuggestion(
                    module_id=module.id,
                    module_name=module.name,
                    type=SuggestionType.MOVE_AFTER,
                    target_module_id=dep_id,
                    current_position=current,
                    suggested_position=dep_pos,
                    confidence=SuggestionConfidence.REQUIRED,
                    reason=SuggestionReason.DEPENDENCY_ORDER,
                    explanation=f"'{module.name}' depends on '{dep_id}' which is currently loaded after it.",
                    priority=1,
                )
            )
            result.critical_issues += 1

        for earlier_id in module.load_after:
            hint_pos = positions.get(earlier_id)
            if hint_pos is None or hint_pos <= current:
                continue
            result.suggestions.append(
                OptimizationSuggestion(
                    module_id=module.id,
                    module_name=module.name,
                    type=SuggestionType.MOVE_AFTER,
                    target_module_id=earlier_id,
                    current_position=current,
                    suggested_position=hint_pos,
                    confidence=SuggestionConfidence.HIGH,
                    reason=SuggestionReason.LOAD_AFTER_DEPENDENCY,
                    explanation=f"'{module.name}' should load after '{earlier_id}'.",
                    priority=2,
                )
            )
            result.warnings += 1

        for later_id in module.load_before:
            hint_pos = positions.get(later_id)
            if hint_pos is None or hint_pos >= current:
                continue
            result.suggestions.append(
                OptimizationSuggestion(
                    module_id=module.id,
                    module_name=module.name,
                    type=SuggestionType.MOVE_BEFORE,
                    target_module_id=later_id,
                    current_position=current,
                    suggested_position=hint_pos,
                    confidence=SuggestionConfidence.HIGH,
                    reason=SuggestionReason.LOAD_BEFORE_DEPENDENCY,
                    explanation=f"'{module.name}' should load before '{later_id}'.",
                    priority=2,
                )
            )
            result.warnings += 1

    result.has_issues = result.critical_issues > 0 or result.warnings > 0
    result.health_score = compute_health_score(result.critical_issues, result.warnings)

    if options.generate_optimized_order:
        order, breaks = synthesize_order_with_breaks(
            modules, [m.id for m in enabled], options.cycle_policy
        )
        result.optimized_order = order
        result.cycle_breaks = breaks

    if result.has_issues:
        result.summary = (
            f"Found {result.critical_issues} critical issues and {result.warnings} warnings. "
            f"Health score: {result.health_score}/100."
        )
    else:
        result.summary = "Load order is optimal. No issues found."

    _disambiguate_ids(result.suggestions)
    result.suggestions.sort(key=lambda s: s.priority)
    logger.debug(
        "Analyzed %d modules: %d critical, %d warnings",
        len(enabled), result.critical_issues, result.warnings,
    )
    return result


def _disambiguate_ids(suggestions: List[OptimizationSuggestion]) -> None:
    # A module that declares the same reference twice yields twin suggestions.
    seen: Dict[str, int] = {}
    for suggestion in suggestions:
        count = seen.get(suggestion.id, 0) + 1
        seen[suggestion.id] = count
        if count > 1:
            suggestion.id = f"{suggestion.id}-{count}"


def health_score(
    modules: Sequence[Module],
    load_order: Sequence[OrderItem],
    options: Optional[OptimizationOptions] = None,
) -> int:
    """Health score of the current order, without synthesizing a new one."""
    options = options or OptimizationOptions()
    quick = OptimizationOptions(
        enabled_only=options.enabled_only,
        include_native=options.include_native,
        generate_optimized_order=False,
    )
    return analyze_load_order(modules, load_order, quick).health_score


def synthesize_order_with_breaks(
    modules: Sequence[Module],
    start_ids: Sequence[str],
    policy: CyclePolicy = CyclePolicy.LENIENT,
) -> Tuple[List[str], List[CycleBreak]]:
    """Topologically order ``start_ids`` by dependencies and load-after hints.

    Prerequisites are visited depth-first before the module itself, in
    declaration order, and start ids are taken in the given order, which
    decides ties. Modules outside ``start_ids`` are walked through so their
    own prerequisites still constrain the order, but are not emitted.

    When the walk reaches a module that is still being visited, the edge
    closing the cycle is dropped (``lenient``), dropped and returned
    (``report``), or an :class:`OrderCycleError` is raised (``strict``).
    """
    catalog = index_modules(list(modules))
    wanted: Set[str] = set(start_ids)
    emitted: Set[str] = set()
    visiting: Set[str] = set()
    ordered: List[str] = []
    breaks: List[CycleBreak] = []

    def prerequisites(module_id: str) -> List[str]:
        module = catalog.get(module_id)
        if module is None:
            return []
        return module.dependency_ids() + list(module.load_after)

    for start in start_ids:
        if start in emitted or start in visiting:
            continue
        visiting.add(start)
        # Frames are (module id, its prerequisites, next offset).
        stack: List[Tuple[str, List[str], int]] = [(start, prerequisites(start), 0)]

        while stack:
            module_id, prereqs, offset = stack[-1]
            if offset < len(prereqs):
                stack[-1] = (module_id, prereqs, offset + 1)
                child = prereqs[offset]
                if child in emitted:
                    continue
                if child in visiting:
                    if policy == CyclePolicy.STRICT:
                        path = [frame[0] for frame in stack]
                        raise OrderCycleError(path[path.index(child):] + [child])
                    if policy == CyclePolicy.REPORT:
                        breaks.append((module_id, child))
                    logger.debug("Cycle while ordering: skipping %s -> %s", module_id, child)
                    continue
                visiting.add(child)
                stack.append((child, prerequisites(child), 0))
                continue

            stack.pop()
            visiting.discard(module_id)
            emitted.add(module_id)
            if module_id in wanted:
                ordered.append(module_id)

    return ordered, breaks


def synthesize_order(
    modules: Sequence[Module],
    start_ids: Sequence[str],
    policy: CyclePolicy = CyclePolicy.LENIENT,
) -> List[str]:
    order, _ = synthesize_order_with_breaks(modules, start_ids, policy)
    return order


def find_suggestion(result: OptimizationResult, suggestion_id: str) -> Optional[OptimizationSuggestion]:
    for suggestion in result.suggestions:
        if suggestion.id == suggestion_id:
            return suggestion
    return None


def apply_suggestion(order: Sequence[str], suggestion: OptimizationSuggestion) -> Optional[List[str]]:
    """Return ``order`` with the suggested module moved to its suggested index.

    Returns None when the module is not part of ``order``.
    """
    if suggestion.module_id not in order:
        return None
    moved = [module_id for module_id in order if module_id != suggestion.module_id]
    target = min(max(suggestion.suggested_position, 0), len(moved))
    moved.insert(target, suggestion.module_id)
    return moved


def merge_into_order(full_order: Sequence[str], reordered: Sequence[str]) -> List[str]:
    """Place ``reordered`` into the slots its members occupy in ``full_order``.

    Modules outside ``reordered`` keep their positions. Ids in ``reordered``
    that ``full_order`` does not contain are appended at the end.
    """
    members = set(reordered)
    queue = iter(reordered)
    merged = [next(queue) if module_id in members else module_id for module_id in full_order]
    merged.extend(queue)
    return merged


def to_load_order(
    order: Sequence[str],
    modules: Sequence[Module],
    enabled: Optional[Mapping[str, bool]] = None,
) -> List[LoadOrderEntry]:
    """Turn an id list into indexed entries, dropping ids unknown to the catalog.

    Without ``enabled`` every entry is selected.
    """
    catalog = index_modules(list(modules))
    entries: List[LoadOrderEntry] = []
    for module_id in order:
        module = catalog.get(module_id)
        if module is None:
            continue
        selected = True if enabled is None else bool(enabled.get(module_id, False))
        entries.append(
            LoadOrderEntry(id=module_id, name=module.name, is_selected=selected, index=len(entries))
        )
    return entries
