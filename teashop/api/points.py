"""
Points Rules API.

Endpoints for the loyalty rules engine:
- Read/update points rules (admin)
- Order points and redemption previews (storefront checkout)
- Member tier upgrade check (called by the order subsystem)
"""
from decimal import Decimal, InvalidOperation
from flask import Blueprint, request, jsonify

from ..extensions import db
from ..middleware.admin_auth import require_admin
from ..models import Member
from ..services.config_service import get_registry
from ..services.points_rules import PointsRules, PointsRulesService
from ..utils.errors import bad_request
from ..utils.exceptions import MemberNotFoundError, ValidationError

points_bp = Blueprint('points', __name__)


def _service() -> PointsRulesService:
    return PointsRulesService(get_registry())


def _request_data():
    """JSON object body, {} when empty, None when the body is not an object."""
    data = request.get_json(silent=True) or {}
    return data if isinstance(data, dict) else None


def _decimal_field(data: dict, name: str, required: bool = True):
    value = data.get(name)
    if value is None:
        if required:
            raise ValidationError(f'{name} is required', field=name)
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{name} must be a number', field=name)
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f'{name} must be a number', field=name)
    if not number.is_finite():
        raise ValidationError(f'{name} must be a number', field=name)
    return number


# ==================== Rules ====================

@points_bp.route('/rules', methods=['GET'])
@require_admin
def get_rules():
    """Current points rules."""
    return jsonify(_service().get_rules().to_dict())


@points_bp.route('/rules', methods=['PUT'])
@require_admin
def update_rules():
    """
    Update points rules. Omitted fields keep their current value.

    Request body:
    {
        "spendPerPoint": 30,
        "levelBonus": {"normal": 15, "silver": 17, "gold": 20, "diamond": 25},
        "upgradeThreshold": {"silver": 1000, "gold": 5000, "diamond": 10000},
        "pointsToRuble": 100,
        "maxRedeemPerOrder": 50
    }
    """
    data = _request_data()
    if data is None:
        return bad_request('Request body must be a JSON object')

    service = _service()
    rules = PointsRules.from_dict(data, base=service.get_rules())
    updated = service.update_rules(rules)
    return jsonify({'success': True, 'rules': updated.to_dict()})


# ==================== Previews ====================

@points_bp.route('/calculate', methods=['POST'])
def calculate_points():
    """
    Points an order would earn.

    Request body:
    {
        "orderAmount": 300,
        "memberLevel": "gold"
    }
    """
    data = _request_data()
    if data is None:
        return bad_request('Request body must be a JSON object')
    amount = _decimal_field(data, 'orderAmount')
    result = _service().compute_order_points(amount, data.get('memberLevel', 'normal'))
    return jsonify(result.to_dict())


@points_bp.route('/redemption', methods=['POST'])
def redemption_preview():
    """
    Points usable on an order and the resulting discount.

    Request body:
    {
        "orderAmount": 600,
        "availablePoints": 50000
    }
    """
    data = _request_data()
    if data is None:
        return bad_request('Request body must be a JSON object')
    amount = _decimal_field(data, 'orderAmount')
    available = _decimal_field(data, 'availablePoints')
    result = _service().compute_redemption(amount, int(available))
    return jsonify(result.to_dict())


# ==================== Tier Upgrade ====================

@points_bp.route('/members/<int:member_id>/check-upgrade', methods=['POST'])
@require_admin
def check_upgrade(member_id):
    """
    Upgrade a member's tier if their cumulative spend qualifies.

    Request body (optional):
    {
        "cumulativeSpend": 12000
    }
    If cumulativeSpend is omitted the member's total_spent is used.
    """
    member = db.session.get(Member, member_id)
    if not member:
        raise MemberNotFoundError(member_id)

    data = _request_data()
    if data is None:
        return bad_request('Request body must be a JSON object')
    spend = _decimal_field(data, 'cumulativeSpend', required=False)

    result = _service().check_and_upgrade_tier(member, spend)
    return jsonify({**result.to_dict(), 'member': member.to_dict()})
