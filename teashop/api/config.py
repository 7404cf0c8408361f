"""
System Config API.

Admin console endpoints for the config registry:
- List settings (grouped by category) and categories
- Read, update, batch update and reset single keys
- Refresh the registry cache and seed default rows
- Registry status (degraded mode)

Plus one unauthenticated endpoint, /public, with the brand, delivery,
order and system values the storefront needs before login.

Business errors (unknown key, bad type, storage down) propagate to the
app-level handlers, which render them with distinct codes.
"""
import logging
from flask import Blueprint, request, jsonify

from ..middleware.admin_auth import require_admin
from ..services.config_catalog import CATEGORY_NAMES, ConfigCategory
from ..services.config_service import get_registry
from ..utils.cache import cache, invalidate_public_config, PUBLIC_CONFIG_CACHE_KEY
from ..utils.errors import bad_request, ErrorCode
from ..utils.exceptions import TeaShopError

logger = logging.getLogger(__name__)

config_bp = Blueprint('config', __name__)


def _category_payload(category: ConfigCategory) -> dict:
    return {'key': category.value, **CATEGORY_NAMES[category]}


# ==================== Read Endpoints ====================

@config_bp.route('', methods=['GET'])
@require_admin
def list_configs():
    """
    All settings grouped by category.

    Response:
    {
        "brand": {"name": {"zh": ..., "ru": ..., "en": ...}, "items": [...]},
        ...
    }
    """
    grouped = {}
    for item in get_registry().list_all():
        category = item.category
        if category.value not in grouped:
            grouped[category.value] = {
                'name': CATEGORY_NAMES[category],
                'items': [],
            }
        grouped[category.value]['items'].append(item.to_dict())

    return jsonify(grouped)


@config_bp.route('/categories', methods=['GET'])
@require_admin
def list_categories():
    """Config categories with their display names."""
    return jsonify([_category_payload(c) for c in ConfigCategory])


@config_bp.route('/category/<category>', methods=['GET'])
@require_admin
def get_by_category(category):
    """Settings of one category."""
    items = get_registry().list_by_category(category)
    return jsonify([item.to_dict() for item in items])


@config_bp.route('/item/<key>', methods=['GET'])
@require_admin
def get_config(key):
    """Single setting with its definition and resolved value."""
    return jsonify(get_registry().get_item(key).to_dict())


@config_bp.route('/status', methods=['GET'])
@require_admin
def registry_status():
    """Registry status; degraded=true means defaults are being served."""
    return jsonify(get_registry().status())


# ==================== Write Endpoints ====================

@config_bp.route('/item/<key>', methods=['PUT'])
@require_admin
def update_config(key):
    """
    Update a single setting.

    Request body:
    {
        "value": 25
    }
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return bad_request('Request body must be a JSON object')
    if 'value' not in data:
        return bad_request('value is required', ErrorCode.MISSING_FIELD)

    value = get_registry().set(key, data['value'])
    invalidate_public_config()

    return jsonify({'success': True, 'key': key, 'value': value})


@config_bp.route('/batch', methods=['POST'])
@require_admin
def batch_update():
    """
    Update several settings; one failing key does not stop the others.

    Request body:
    {
        "configs": [
            {"key": "delivery.baseFee", "value": 120},
            {"key": "system.maintenanceMode", "value": true}
        ]
    }
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return bad_request('Request body must be a JSON object')
    configs = data.get('configs')
    if not isinstance(configs, list):
        return bad_request('configs must be a list', ErrorCode.MISSING_FIELD)

    registry = get_registry()
    results = []
    for entry in configs:
        if not isinstance(entry, dict) or not isinstance(entry.get('key'), str) or 'value' not in entry:
            results.append({
                'key': None,
                'success': False,
                'error': 'a string key and a value are required',
                'code': ErrorCode.INVALID_REQUEST.value,
            })
            continue
        try:
            value = registry.set(entry['key'], entry['value'])
            results.append({'key': entry['key'], 'success': True, 'value': value})
        except TeaShopError as e:
            results.append({
                'key': entry['key'],
                'success': False,
                'error': e.message,
                'code': e.code,
            })

    succeeded = sum(1 for r in results if r['success'])
    if succeeded:
        invalidate_public_config()
    logger.info('[ConfigAPI] Batch update: %d succeeded, %d failed', succeeded, len(results) - succeeded)

    return jsonify({'results': results})


@config_bp.route('/item/<key>/reset', methods=['POST'])
@require_admin
def reset_config(key):
    """Restore the catalog default for a setting."""
    value = get_registry().reset(key)
    invalidate_public_config()
    return jsonify({'success': True, 'key': key, 'value': value})


@config_bp.route('/refresh', methods=['POST'])
@require_admin
def refresh_configs():
    """Reload every setting from the database (after manual edits)."""
    registry = get_registry()
    registry.refresh()
    invalidate_public_config()
    return jsonify({'success': True, 'status': registry.status()})


@config_bp.route('/init-defaults', methods=['POST'])
@require_admin
def init_defaults():
    """Write a row with the default for every setting that has none."""
    inserted = get_registry().init_defaults()
    return jsonify({'success': True, 'inserted': inserted})


# ==================== Public Endpoint ====================

@config_bp.route('/public', methods=['GET'])
@cache.cached(timeout=60, key_prefix=PUBLIC_CONFIG_CACHE_KEY)
def public_config():
    """Storefront settings readable without authentication."""
    registry = get_registry()
    get = registry.get_loaded

    return {
        'brand': {
            'name': get('brand.name'),
            'slogan': get('brand.slogan'),
            'website': get('brand.website'),
            'supportEmail': get('brand.supportEmail'),
            'supportPhone': get('brand.supportPhone'),
        },
        'delivery': {
            'baseFee': get('delivery.baseFee'),
            'freeThreshold': get('delivery.freeThreshold'),
            'estimatedTime': get('delivery.estimatedTime'),
        },
        'order': {
            'minAmount': get('order.minAmount'),
        },
        'system': {
            'maintenanceMode': get('system.maintenanceMode'),
            'maintenanceMessage': get('system.maintenanceMessage'),
            'defaultLanguage': get('system.defaultLanguage'),
        },
    }
