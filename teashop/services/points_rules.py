"""
Points Rules Service for the tea shop loyalty program.

Derives points earned per order, redemption limits and member tier upgrades
from the config registry (points.* keys) and the member's cumulative spend.

Tier upgrade order (highest first):
1. diamond - spend >= diamond threshold and not already diamond
2. gold    - spend >= gold threshold and currently normal or silver
3. silver  - spend >= silver threshold and currently normal

Tiers only move up. A member can skip tiers in a single check
(normal -> diamond), and lowering thresholds later never demotes anyone.
"""
import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_DOWN
from enum import Enum
from typing import Any, Dict, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..utils.exceptions import (
    PersistenceUnavailableError,
    RulesValidationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]


class MemberTier(str, Enum):
    """Loyalty tier, ordered normal < silver < gold < diamond."""
    NORMAL = 'normal'
    SILVER = 'silver'
    GOLD = 'gold'
    DIAMOND = 'diamond'

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)

    @classmethod
    def parse(cls, value) -> 'MemberTier':
        try:
            return cls(value)
        except (ValueError, TypeError):
            raise ValidationError(f'Unknown member level "{value}"', field='member_level')


TIER_ORDER = [MemberTier.NORMAL, MemberTier.SILVER, MemberTier.GOLD, MemberTier.DIAMOND]
UPGRADE_TIERS = [MemberTier.SILVER, MemberTier.GOLD, MemberTier.DIAMOND]

# Registry keys backing each PointsRules field
RULE_KEYS = {
    'spend_per_point': 'points.spendPerPoint',
    'level_bonus': 'points.levelBonus',
    'upgrade_threshold': 'points.upgradeThreshold',
    'points_to_currency': 'points.pointsToRuble',
    'max_redeem_percent': 'points.maxRedeemPerOrder',
}

DEFAULT_RULES = {
    'spendPerPoint': 30,
    'levelBonus': {'normal': 15, 'silver': 17, 'gold': 20, 'diamond': 25},
    'upgradeThreshold': {'silver': 1000, 'gold': 5000, 'diamond': 10000},
    'pointsToRuble': 100,
    'maxRedeemPerOrder': 50,
}


@dataclass
class PointsRules:
    """Snapshot of the points.* settings."""
    spend_per_point: Number
    level_bonus: Dict[str, Number]
    upgrade_threshold: Dict[str, Number]
    points_to_currency: Number = DEFAULT_RULES['pointsToRuble']
    max_redeem_percent: Number = DEFAULT_RULES['maxRedeemPerOrder']

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: 'PointsRules' = None) -> 'PointsRules':
        """
        Build rules from the camelCase wire format.

        Fields missing from data are taken from base (or the defaults).
        """
        if not isinstance(data, dict):
            raise ValidationError('Points rules must be an object')
        base_dict = base.to_dict() if base else DEFAULT_RULES
        merged = {**base_dict, **{k: v for k, v in data.items() if k in DEFAULT_RULES}}
        for name in ('levelBonus', 'upgradeThreshold'):
            if not isinstance(merged[name], dict):
                raise ValidationError(f'{name} must be an object', field=name)
        return cls(
            spend_per_point=merged['spendPerPoint'],
            level_bonus=dict(merged['levelBonus']),
            upgrade_threshold=dict(merged['upgradeThreshold']),
            points_to_currency=merged['pointsToRuble'],
            max_redeem_percent=merged['maxRedeemPerOrder'],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'spendPerPoint': self.spend_per_point,
            'levelBonus': dict(self.level_bonus),
            'upgradeThreshold': dict(self.upgrade_threshold),
            'pointsToRuble': self.points_to_currency,
            'maxRedeemPerOrder': self.max_redeem_percent,
        }


@dataclass
class OrderPoints:
    base_points: int
    bonus_points: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return {
            'basePoints': self.base_points,
            'bonusPoints': self.bonus_points,
            'totalPoints': self.total,
        }


@dataclass
class Redemption:
    points: int
    discount: Decimal
    max_discount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'points': self.points,
            'discount': float(self.discount),
            'maxDiscount': float(self.max_discount),
        }


@dataclass
class TierUpgrade:
    upgraded: bool
    tier: MemberTier
    previous_tier: MemberTier = field(default=MemberTier.NORMAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'upgraded': self.upgraded,
            'newLevel': self.tier.value,
            'previousLevel': self.previous_tier.value,
        }


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def validate_rules(rules: PointsRules) -> None:
    """
    Check every rules invariant before anything is written.

    Raises:
        RulesValidationError: naming the first violated invariant
    """
    if not _is_number(rules.spend_per_point) or rules.spend_per_point <= 0:
        raise RulesValidationError(
            'spend_per_point_positive', 'spendPerPoint must be greater than 0'
        )

    for tier in TIER_ORDER:
        bonus = rules.level_bonus.get(tier.value)
        if not _is_number(bonus) or bonus < 0 or bonus > 100:
            raise RulesValidationError(
                'level_bonus_range', f'levelBonus.{tier.value} must be between 0 and 100'
            )

    thresholds = [rules.upgrade_threshold.get(t.value) for t in UPGRADE_TIERS]
    if not all(_is_number(t) for t in thresholds):
        raise RulesValidationError(
            'thresholds_present', 'upgradeThreshold must define silver, gold and diamond'
        )
    silver, gold, diamond = thresholds
    if silver <= 0 or gold <= silver or diamond <= gold:
        raise RulesValidationError(
            'thresholds_ascending', 'upgradeThreshold must be in ascending order'
        )

    if not _is_number(rules.points_to_currency) or rules.points_to_currency <= 0:
        raise RulesValidationError(
            'points_to_currency_positive', 'pointsToRuble must be greater than 0'
        )

    if not _is_number(rules.max_redeem_percent) or not 0 <= rules.max_redeem_percent <= 100:
        raise RulesValidationError(
            'max_redeem_percent_range', 'maxRedeemPerOrder must be between 0 and 100'
        )


def check_rules_write(registry, pending: Dict[str, Any]) -> None:
    """
    Registry write validator for the points.* keys.

    Merges the pending values over the current ones and validates the
    resulting rule set, so a single-key update cannot break an invariant.

    Raises:
        RulesValidationError: nothing has been written
    """
    current = {
        field_name: pending[key] if key in pending else registry.get(key)
        for field_name, key in RULE_KEYS.items()
    }
    validate_rules(PointsRules(**current))


class PointsRulesService:
    """
    Loyalty rules on top of a ConfigRegistry.

    Usage:
        service = PointsRulesService(get_registry())
        service.compute_order_points(300, 'gold')
        service.check_and_upgrade_tier(member, member.total_spent)
    """

    def __init__(self, registry):
        self.registry = registry

    # ==================== Rules ====================

    def get_rules(self) -> PointsRules:
        """
        Current rules, loading the registry first if needed.

        Rows edited by hand can still hold an invalid rule set; those are
        logged and the default rules are used so calculations never divide
        by zero.
        """
        rules = PointsRules(
            spend_per_point=self.registry.get_loaded(RULE_KEYS['spend_per_point'], DEFAULT_RULES['spendPerPoint']),
            level_bonus=self.registry.get_loaded(RULE_KEYS['level_bonus'], DEFAULT_RULES['levelBonus']),
            upgrade_threshold=self.registry.get_loaded(RULE_KEYS['upgrade_threshold'], DEFAULT_RULES['upgradeThreshold']),
            points_to_currency=self.registry.get_loaded(RULE_KEYS['points_to_currency'], DEFAULT_RULES['pointsToRuble']),
            max_redeem_percent=self.registry.get_loaded(RULE_KEYS['max_redeem_percent'], DEFAULT_RULES['maxRedeemPerOrder']),
        )
        try:
            validate_rules(rules)
        except RulesValidationError as e:
            logger.error('[PointsRules] Stored rules are invalid (%s), using defaults', e.invariant)
            return PointsRules.from_dict({})
        return rules

    def update_rules(self, rules: PointsRules) -> PointsRules:
        """
        Validate then persist all rules keys in one write.

        Raises:
            RulesValidationError: nothing has been written
            PersistenceUnavailableError: nothing has been written
        """
        validate_rules(rules)
        self.registry.set_many({
            RULE_KEYS['spend_per_point']: rules.spend_per_point,
            RULE_KEYS['level_bonus']: rules.level_bonus,
            RULE_KEYS['upgrade_threshold']: rules.upgrade_threshold,
            RULE_KEYS['points_to_currency']: rules.points_to_currency,
            RULE_KEYS['max_redeem_percent']: rules.max_redeem_percent,
        })
        logger.info('[PointsRules] Rules updated: %s', rules.to_dict())
        return self.get_rules()

    # ==================== Earning ====================

    def compute_order_points(self, order_amount: Number, member_tier) -> OrderPoints:
        """
        Points earned for an order.

        base  = floor(order_amount / spendPerPoint)
        bonus = floor(base * levelBonus[tier] / 100)
        """
        tier = MemberTier.parse(member_tier)
        amount = Decimal(str(order_amount))
        if amount < 0:
            raise ValidationError('orderAmount must not be negative', field='order_amount')

        rules = self.get_rules()
        spend_per_point = Decimal(str(rules.spend_per_point))
        bonus_percent = Decimal(str(rules.level_bonus.get(tier.value, 0)))

        base_points = int((amount / spend_per_point).to_integral_value(rounding=ROUND_DOWN))
        bonus_points = int((base_points * bonus_percent / 100).to_integral_value(rounding=ROUND_DOWN))

        return OrderPoints(
            base_points=base_points,
            bonus_points=bonus_points,
            total=base_points + bonus_points,
        )

    # ==================== Redemption ====================

    def compute_redemption(self, order_amount: Number, available_points: int) -> Redemption:
        """
        How many points can pay for part of an order.

        Capped by maxRedeemPerOrder percent of the order and by the points
        available; pointsToRuble points buy one ruble of discount.
        """
        amount = Decimal(str(order_amount))
        if amount < 0:
            raise ValidationError('orderAmount must not be negative', field='order_amount')
        if available_points is None or int(available_points) < 0:
            raise ValidationError('availablePoints must not be negative', field='available_points')

        rules = self.get_rules()
        rate = Decimal(str(rules.points_to_currency))
        max_discount = (amount * Decimal(str(rules.max_redeem_percent)) / 100).quantize(
            Decimal('0.01'), rounding=ROUND_DOWN
        )
        max_points = int((max_discount * rate).to_integral_value(rounding=ROUND_DOWN))
        points = min(int(available_points), max_points)
        discount = (Decimal(points) / rate).quantize(Decimal('0.01'), rounding=ROUND_DOWN)

        return Redemption(points=points, discount=discount, max_discount=max_discount)

    # ==================== Tiers ====================

    def determine_tier(self, current_tier, cumulative_spend: Number) -> MemberTier:
        """Tier a member should hold; never lower than current_tier."""
        current = MemberTier.parse(current_tier)
        spend = Decimal(str(cumulative_spend or 0))
        thresholds = self.get_rules().upgrade_threshold

        def reached(tier: MemberTier) -> bool:
            threshold = thresholds.get(tier.value)
            return threshold is not None and spend >= Decimal(str(threshold))

        # Highest reachable tier first, so a member can skip tiers
        for tier in reversed(UPGRADE_TIERS):
            if reached(tier) and current.rank < tier.rank:
                return tier
        return current

    def check_and_upgrade_tier(self, member, cumulative_spend: Optional[Number] = None) -> TierUpgrade:
        """
        Upgrade member.member_level if cumulative spend qualifies.

        The member row is only written when the tier changes.

        Args:
            member: Member model instance
            cumulative_spend: Spend to evaluate; defaults to member.total_spent
        """
        if cumulative_spend is None:
            cumulative_spend = member.total_spent
        current = MemberTier.parse(member.member_level or MemberTier.NORMAL.value)
        new_tier = self.determine_tier(current, cumulative_spend)

        if new_tier == current:
            return TierUpgrade(upgraded=False, tier=current, previous_tier=current)

        member.member_level = new_tier.value
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('[PointsRules] Failed to upgrade member %s: %s', member.id, e)
            raise PersistenceUnavailableError(
                f'Failed to save tier upgrade for member {member.id}', original_error=e
            )

        logger.info(
            '[PointsRules] Member %s upgraded %s -> %s (spend %s)',
            member.id, current.value, new_tier.value, cumulative_spend
        )
        return TierUpgrade(upgraded=True, tier=new_tier, previous_tier=current)
