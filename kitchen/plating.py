"""
Plating and decoration composer.

A recipe's deco rules say which garnish, set-out ingredient or side bundle
goes into which cell of the 3x3 plate grid, in what order and how much of it.
"""

import logging
import math
from typing import List, Optional, Tuple

from catalog import DecoRule, RecipeCatalog
from kitchen.instances import AppliedDeco, BundleInstance, DecoLayer, DecoMain, DecoSetting, Merged
from kitchen.state import CommandResult, GameState
from kitchen.validation import ValidationPolicy, Verdict
from kitchen_types import DecoSourceType, RejectionReason

logger = logging.getLogger(__name__)

CENTER_CELL = 5


class DecoComposer:
    """Applies garnishes and merges side bundles onto main-dish plates."""

    def __init__(self, state: GameState, catalog: RecipeCatalog, policy: ValidationPolicy):
        self.state = state
        self.catalog = catalog
        self.policy = policy

    # Rule bookkeeping

    def merged_amount(self, target: BundleInstance, rule: DecoRule) -> float:
        applied = target.plating.applied(rule.id) if target.plating else None
        if applied is None:
            return 0.0
        return applied.merged_amount or 0.0

    def is_satisfied(self, target: BundleInstance, rule: DecoRule) -> bool:
        if target.plating is None:
            return False
        if rule.source_type == DecoSourceType.BUNDLE:
            return math.isclose(self.merged_amount(target, rule), rule.required_amount, abs_tol=1e-6)
        return target.plating.applied(rule.id) is not None

    def unsatisfied_prior(self, target: BundleInstance, rule: DecoRule) -> List[DecoRule]:
        return [
            prior for prior in self.catalog.deco_rules(target.recipe_id)
            if prior.order < rule.order and not self.is_satisfied(target, prior)
        ]

    def is_complete(self, target: BundleInstance) -> bool:
        rules = self.catalog.deco_rules(target.recipe_id)
        if not rules:
            return not self.catalog.get_bundle(target.bundle_id).deco_required
        return all(self.is_satisfied(target, rule) for rule in rules)

    def remaining(self, target: BundleInstance) -> List[DecoRule]:
        return [r for r in self.catalog.deco_rules(target.recipe_id) if not self.is_satisfied(target, r)]

    def _find_item_rule(self, target: BundleInstance, source_id: str,
                        grid_position: int) -> Optional[DecoRule]:
        candidates = [
            r for r in self.catalog.deco_rules(target.recipe_id)
            if r.source_type != DecoSourceType.BUNDLE and source_id in (r.source_id, r.id)
        ]
        if not candidates:
            return None
        for rule in candidates:
            if rule.grid_position == grid_position and not self.is_satisfied(target, rule):
                return rule
        for rule in candidates:
            if not self.is_satisfied(target, rule):
                return rule
        return candidates[0]

    def _find_bundle_rule(self, target: BundleInstance, bundle_id: str) -> Optional[DecoRule]:
        for rule in self.catalog.deco_rules(target.recipe_id):
            if rule.source_type == DecoSourceType.BUNDLE and rule.source_id == bundle_id:
                return rule
        return None

    def _check_target(self, target: BundleInstance) -> Optional[CommandResult]:
        if not isinstance(target.location, DecoMain) or target.plating is None:
            return CommandResult.reject(RejectionReason.NOT_MAIN_DISH,
                                        f"{target.id} is not a main dish on the deco counter")
        if target.plating.is_complete:
            return CommandResult.reject(RejectionReason.PLATE_COMPLETE, "The plate is already finished")
        return None

    def _check_position(self, target: BundleInstance, grid_position: int) -> Optional[CommandResult]:
        cells = len(target.plating.grid_cells)
        if not 1 <= grid_position <= cells:
            return CommandResult.reject(RejectionReason.INVALID_GRID_POSITION,
                                        f"Grid position {grid_position} is outside 1-{cells}")
        return None

    def _check_order(self, target: BundleInstance, rule: DecoRule) -> Tuple[Optional[CommandResult], bool]:
        """Returns a refusal, or whether the placement breaks the order and costs a mistake."""
        missing = self.unsatisfied_prior(target, rule)
        if not missing:
            return None, False
        names = ", ".join(r.display_name or r.id for r in missing)
        verdict = self.policy.judge(RejectionReason.ORDER_VIOLATION)
        if verdict == Verdict.REJECT:
            return CommandResult.reject(RejectionReason.ORDER_VIOLATION, f"Add {names} first"), False
        logger.debug(f"Deco order mistake on {target.id}: {names} still missing")
        return None, True

    # Commands

    def apply_item(self, target: BundleInstance, source_id: str, grid_position: int,
                   amount: float) -> CommandResult:
        """Put a garnish or set-out ingredient onto a main-dish plate."""
        refused = self._check_target(target)
        if refused:
            return refused
        refused = self._check_position(target, grid_position)
        if refused:
            return refused

        rule = self._find_item_rule(target, source_id, grid_position)
        if rule is None:
            return CommandResult.reject(RejectionReason.NO_DECO_RULE,
                                        f"{source_id} does not belong on {target.menu_name}")
        if rule.grid_position is not None and rule.grid_position != grid_position:
            return CommandResult.reject(RejectionReason.INVALID_GRID_POSITION,
                                        f"{rule.display_name or rule.id} goes in cell {rule.grid_position}")

        refused, order_mistake = self._check_order(target, rule)
        if refused:
            return refused
        if target.plating.applied(rule.id) is not None:
            return CommandResult.reject(RejectionReason.ALREADY_APPLIED,
                                        f"{rule.display_name or rule.id} is already on the plate")
        if not math.isclose(amount, rule.required_amount, abs_tol=1e-6):
            return CommandResult.reject(RejectionReason.WRONG_AMOUNT,
                                        f"{rule.display_name or rule.id} needs {rule.required_amount:g}")

        setting_item = None
        if rule.source_type == DecoSourceType.SETTING_ITEM:
            setting_item = self.state.setting_item_for(rule.source_id)
            if setting_item is None or setting_item.remaining_amount + 1e-6 < amount:
                return CommandResult.reject(RejectionReason.INSUFFICIENT_STOCK,
                                            f"Not enough {rule.display_name or rule.source_id} set out")
            setting_item.remaining_amount = max(setting_item.remaining_amount - amount, 0.0)

        self._add_layer(target, rule, grid_position, amount)
        target.plating.applied_decos.append(AppliedDeco(
            deco_rule_id=rule.id,
            source_type=rule.source_type,
            grid_position=grid_position,
            amount=amount,
        ))
        if order_mistake:
            self.state.deco_mistakes += 1
        target.plating.is_complete = self.is_complete(target)

        return CommandResult.ok(
            f"{rule.display_name or rule.id} placed in cell {grid_position}",
            deco_rule_id=rule.id,
            is_complete=target.plating.is_complete,
            order_mistake=order_mistake,
        )

    def merge(self, target: BundleInstance, source: BundleInstance, amount: float,
              grid_position: Optional[int] = None) -> CommandResult:
        """Draw down a side bundle into a main-dish plate."""
        if source.order_id != target.order_id:
            return CommandResult.reject(RejectionReason.DIFFERENT_ORDER,
                                        "Side and main dish belong to different orders")
        refused = self._check_target(target)
        if refused:
            return refused
        if not isinstance(source.location, DecoSetting):
            return CommandResult.reject(RejectionReason.NOT_SIDE_BUNDLE,
                                        f"{source.id} is not waiting on the setting counter")
        if amount <= 0:
            return CommandResult.reject(RejectionReason.WRONG_AMOUNT, "Merge amount must be positive")

        rule = self._find_bundle_rule(target, source.bundle_id)
        if rule is None:
            return CommandResult.reject(RejectionReason.NO_DECO_RULE,
                                        f"{source.bundle_name} does not go on {target.menu_name}")

        if grid_position is None:
            grid_position = rule.grid_position or CENTER_CELL
        refused = self._check_position(target, grid_position)
        if refused:
            return refused
        if rule.grid_position is not None and rule.grid_position != grid_position:
            return CommandResult.reject(RejectionReason.INVALID_GRID_POSITION,
                                        f"{rule.display_name or source.bundle_name} goes in cell {rule.grid_position}")

        refused, order_mistake = self._check_order(target, rule)
        if refused:
            return refused

        already = self.merged_amount(target, rule)
        if already + amount > rule.required_amount + 1e-6:
            return CommandResult.reject(
                RejectionReason.EXCEEDS_REMAINING,
                f"Only {rule.required_amount - already:g} more of {source.bundle_name} fits"
            )
        if amount > source.available_amount + 1e-6:
            return CommandResult.reject(
                RejectionReason.INSUFFICIENT_STOCK,
                f"{source.bundle_name} has only {source.available_amount:g} left"
            )

        self._add_layer(target, rule, grid_position, amount)
        applied = target.plating.applied(rule.id)
        if applied is None:
            target.plating.applied_decos.append(AppliedDeco(
                deco_rule_id=rule.id,
                source_type=DecoSourceType.BUNDLE,
                grid_position=grid_position,
                amount=amount,
                merged_amount=amount,
            ))
        else:
            applied.amount += amount
            applied.merged_amount = (applied.merged_amount or 0.0) + amount

        source.available_amount = max(source.available_amount - amount, 0.0)
        if source.available_amount <= 1e-6:
            source.available_amount = 0.0
            source.location = Merged(target_id=target.id)
            target.plating.merged_bundle_ids.append(source.id)

        if order_mistake:
            self.state.deco_mistakes += 1
        target.plating.is_complete = self.is_complete(target)
        return CommandResult.ok(
            f"Merged {amount:g} of {source.bundle_name} into {target.menu_name}",
            deco_rule_id=rule.id,
            merged_amount=self.merged_amount(target, rule),
            rule_satisfied=self.is_satisfied(target, rule),
            source_remaining=source.available_amount,
            is_complete=target.plating.is_complete,
            order_mistake=order_mistake,
        )

    def _add_layer(self, target: BundleInstance, rule: DecoRule, grid_position: int, amount: float):
        target.plating.cell(grid_position).layers.append(DecoLayer(
            deco_rule_id=rule.id,
            name=rule.display_name or rule.source_id,
            color=rule.layer_color,
            amount=amount,
            applied_at=self.state.clock,
        ))
