"""
Tests for the System Config API endpoints.

Tests cover:
- Admin token guard (missing vs. wrong token)
- Listing, categories and single-key reads
- Updates, batch updates and resets with their error envelopes
- Refresh, init-defaults and status
- Unauthenticated public config
"""
import json

from teashop import create_app
from teashop.extensions import db
from teashop.models import SystemConfig
from teashop.services.config_catalog import CONFIG_DEFINITIONS, ConfigCategory


class TestAdminGuard:
    """Tests for the admin token requirement."""

    def test_missing_token(self, client):
        response = client.get('/api/config')
        assert response.status_code == 401
        assert response.get_json()['error']['code'] == 'AUTH_REQUIRED'

    def test_wrong_token(self, client):
        response = client.get('/api/config', headers={'X-Admin-Token': 'nope'})
        assert response.status_code == 403
        assert response.get_json()['error']['code'] == 'PERMISSION_DENIED'

    def test_bearer_token_accepted(self, client):
        response = client.get('/api/config', headers={'Authorization': 'Bearer test-admin-token'})
        assert response.status_code == 200

    def test_write_rejected_without_token(self, client, registry):
        response = client.put(
            '/api/config/item/brand.name',
            data=json.dumps({'value': 'Hacked'}),
            content_type='application/json'
        )
        assert response.status_code == 401
        assert registry.get('brand.name') == 'CHU TEA'


class TestConfigRead:
    """Tests for GET endpoints."""

    def test_list_grouped_by_category(self, client, admin_headers):
        response = client.get('/api/config', headers=admin_headers)
        assert response.status_code == 200
        data = response.get_json()

        assert set(data) == {c.value for c in ConfigCategory}
        assert data['points']['name']['en'] == 'Points System'
        total = sum(len(group['items']) for group in data.values())
        assert total == len(CONFIG_DEFINITIONS)

    def test_categories(self, client, admin_headers):
        response = client.get('/api/config/categories', headers=admin_headers)
        data = response.get_json()
        assert [c['key'] for c in data] == [c.value for c in ConfigCategory]
        assert data[0]['zh'] == '品牌设置'

    def test_get_by_category(self, client, admin_headers):
        response = client.get('/api/config/category/delivery', headers=admin_headers)
        assert response.status_code == 200
        keys = [item['key'] for item in response.get_json()]
        assert 'delivery.baseFee' in keys
        assert all(key.startswith('delivery.') for key in keys)

    def test_get_by_unknown_category(self, client, admin_headers):
        response = client.get('/api/config/category/kitchen', headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_CATEGORY'

    def test_get_item(self, client, admin_headers):
        response = client.get('/api/config/item/points.levelBonus', headers=admin_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert data['type'] == 'json'
        assert data['value']['gold'] == 20

    def test_get_unknown_item(self, client, admin_headers):
        response = client.get('/api/config/item/points.nope', headers=admin_headers)
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'CONFIG_KEY_NOT_FOUND'


class TestConfigWrite:
    """Tests for update, batch update and reset."""

    def test_update_item(self, client, admin_headers, registry):
        response = client.put(
            '/api/config/item/delivery.baseFee',
            headers=admin_headers,
            data=json.dumps({'value': 120})
        )
        assert response.status_code == 200
        assert response.get_json() == {'success': True, 'key': 'delivery.baseFee', 'value': 120}
        assert registry.get('delivery.baseFee') == 120

    def test_update_missing_value(self, client, admin_headers):
        response = client.put(
            '/api/config/item/delivery.baseFee',
            headers=admin_headers,
            data=json.dumps({})
        )
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'MISSING_FIELD'

    def test_update_type_mismatch(self, client, admin_headers):
        response = client.put(
            '/api/config/item/delivery.baseFee',
            headers=admin_headers,
            data=json.dumps({'value': 'free'})
        )
        assert response.status_code == 422
        error = response.get_json()['error']
        assert error['code'] == 'TYPE_COERCION_FAILED'
        assert error['key'] == 'delivery.baseFee'
        assert error['expectedType'] == 'number'

    def test_update_unknown_key(self, client, admin_headers):
        response = client.put(
            '/api/config/item/delivery.nope',
            headers=admin_headers,
            data=json.dumps({'value': 1})
        )
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'CONFIG_KEY_NOT_FOUND'

    def test_batch_update_isolates_failures(self, client, admin_headers, registry):
        response = client.post(
            '/api/config/batch',
            headers=admin_headers,
            data=json.dumps({'configs': [
                {'key': 'delivery.baseFee', 'value': 150},
                {'key': 'delivery.nope', 'value': 1},
                {'key': 'order.minAmount', 'value': 'lots'},
                {'key': 'system.maintenanceMode', 'value': True},
                {'value': 5},
            ]})
        )
        assert response.status_code == 200
        results = response.get_json()['results']

        assert [r['success'] for r in results] == [True, False, False, True, False]
        assert results[1]['code'] == 'CONFIG_KEY_NOT_FOUND'
        assert results[2]['code'] == 'TYPE_COERCION_FAILED'
        assert registry.get('delivery.baseFee') == 150
        assert registry.get('order.minAmount') == 100
        assert registry.get('system.maintenanceMode') is True

    def test_batch_requires_list(self, client, admin_headers):
        response = client.post(
            '/api/config/batch',
            headers=admin_headers,
            data=json.dumps({'configs': {'delivery.baseFee': 150}})
        )
        assert response.status_code == 400

    def test_non_object_body(self, client, admin_headers):
        response = client.put(
            '/api/config/item/delivery.baseFee',
            headers=admin_headers,
            data=json.dumps('value')
        )
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_REQUEST'

    def test_batch_non_object_body(self, client, admin_headers):
        response = client.post(
            '/api/config/batch',
            headers=admin_headers,
            data=json.dumps([{'key': 'delivery.baseFee', 'value': 150}])
        )
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_REQUEST'

    def test_batch_non_string_key(self, client, admin_headers):
        response = client.post(
            '/api/config/batch',
            headers=admin_headers,
            data=json.dumps({'configs': [
                {'key': ['delivery.baseFee'], 'value': 1},
                {'key': 'delivery.baseFee', 'value': 150},
            ]})
        )
        assert response.status_code == 200
        results = response.get_json()['results']
        assert results[0]['success'] is False
        assert results[0]['code'] == 'INVALID_REQUEST'
        assert results[1]['success'] is True

    def test_reset_item(self, client, admin_headers, registry):
        registry.set('brand.name', 'CHU TEA Moscow')
        response = client.post('/api/config/item/brand.name/reset', headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()['value'] == 'CHU TEA'
        assert registry.get('brand.name') == 'CHU TEA'


class TestConfigMaintenance:
    """Tests for refresh, init-defaults and status."""

    def test_init_defaults(self, client, admin_headers):
        response = client.post('/api/config/init-defaults', headers=admin_headers)
        assert response.status_code == 200
        assert len(response.get_json()['inserted']) == len(CONFIG_DEFINITIONS)

        response = client.post('/api/config/init-defaults', headers=admin_headers)
        assert response.get_json()['inserted'] == []

    def test_refresh_picks_up_manual_edit(self, client, admin_headers, registry):
        db.session.add(SystemConfig(key='order.minAmount', value='250', description='最低起送金额'))
        db.session.commit()

        response = client.post('/api/config/refresh', headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['status']['initialized'] is True
        assert registry.get('order.minAmount') == 250

    def test_status(self, client, admin_headers):
        response = client.get('/api/config/status', headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['degraded'] is False


class TestDegradedApi:
    """Tests for the API when config storage is down."""

    def test_reads_serve_defaults_and_status_reports_degraded(self, failing_store, admin_headers):
        app = create_app('testing', config_store=failing_store)
        client = app.test_client()

        response = client.get('/api/config/item/delivery.baseFee', headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['value'] == 99

        response = client.get('/api/config/status', headers=admin_headers)
        assert response.get_json()['degraded'] is True

        response = client.get('/health')
        assert response.get_json()['status'] == 'degraded'

    def test_write_returns_503(self, failing_store, admin_headers):
        app = create_app('testing', config_store=failing_store)
        client = app.test_client()

        response = client.put(
            '/api/config/item/delivery.baseFee',
            headers=admin_headers,
            data=json.dumps({'value': 120})
        )
        assert response.status_code == 503
        assert response.get_json()['error']['code'] == 'PERSISTENCE_UNAVAILABLE'


class TestPublicConfig:
    """Tests for GET /api/config/public."""

    def test_no_token_needed(self, client):
        response = client.get('/api/config/public')
        assert response.status_code == 200
        data = response.get_json()

        assert data['brand']['name'] == 'CHU TEA'
        assert data['delivery']['estimatedTime'] == {'min': 30, 'max': 60}
        assert data['order']['minAmount'] == 100
        assert data['system']['maintenanceMode'] is False

    def test_reflects_updates(self, client, admin_headers):
        client.put(
            '/api/config/item/system.maintenanceMode',
            headers=admin_headers,
            data=json.dumps({'value': True})
        )
        response = client.get('/api/config/public')
        assert response.get_json()['system']['maintenanceMode'] is True

    def test_excludes_points_settings(self, client):
        data = client.get('/api/config/public').get_json()
        assert 'points' not in data


class TestPointsKeysWrite:
    """Tests for points.* writes through the generic config endpoints."""

    def test_zero_spend_per_point_rejected(self, client, admin_headers, registry):
        response = client.put(
            '/api/config/item/points.spendPerPoint',
            headers=admin_headers,
            data=json.dumps({'value': 0})
        )
        assert response.status_code == 422
        error = response.get_json()['error']
        assert error['code'] == 'RULES_VALIDATION_FAILED'
        assert error['invariant'] == 'spend_per_point_positive'
        assert registry.get('points.spendPerPoint') == 30
        assert SystemConfig.query.filter_by(key='points.spendPerPoint').first() is None

        calculated = client.post(
            '/api/points/calculate',
            data=json.dumps({'orderAmount': 300, 'memberLevel': 'gold'}),
            content_type='application/json'
        )
        assert calculated.status_code == 200
        assert calculated.get_json()['totalPoints'] == 12

    def test_non_ascending_thresholds_rejected(self, client, admin_headers, registry):
        response = client.put(
            '/api/config/item/points.upgradeThreshold',
            headers=admin_headers,
            data=json.dumps({'value': {'silver': 5000, 'gold': 1000, 'diamond': 10000}})
        )
        assert response.status_code == 422
        assert response.get_json()['error']['invariant'] == 'thresholds_ascending'
        assert registry.get('points.upgradeThreshold')['silver'] == 1000
        assert SystemConfig.query.count() == 0

    def test_valid_rules_key_accepted(self, client, admin_headers, registry):
        response = client.put(
            '/api/config/item/points.spendPerPoint',
            headers=admin_headers,
            data=json.dumps({'value': 25})
        )
        assert response.status_code == 200
        assert registry.get('points.spendPerPoint') == 25

    def test_nan_level_bonus_rejected(self, client, admin_headers, registry):
        response = client.put(
            '/api/config/item/points.levelBonus',
            headers=admin_headers,
            data='{"value": {"normal": NaN, "silver": 17, "gold": 20, "diamond": 25}}'
        )
        assert response.status_code == 422
        assert response.get_json()['error']['code'] == 'TYPE_COERCION_FAILED'
        assert registry.get('points.levelBonus')['normal'] == 15

    def test_batch_reports_rules_violation(self, client, admin_headers, registry):
        response = client.post(
            '/api/config/batch',
            headers=admin_headers,
            data=json.dumps({'configs': [
                {'key': 'points.spendPerPoint', 'value': 0},
                {'key': 'points.maxRedeemPerOrder', 'value': 40},
            ]})
        )
        assert response.status_code == 200
        results = response.get_json()['results']
        assert results[0]['success'] is False
        assert results[0]['code'] == 'RULES_VALIDATION_FAILED'
        assert results[1]['success'] is True
        assert registry.get('points.spendPerPoint') == 30
        assert registry.get('points.maxRedeemPerOrder') == 40
