"""
Tests for the config catalog and per-type coercion.

Tests cover:
- Catalog shape (unique keys, defaults match declared types)
- Coercion of each ConfigType, including rejected input
- Storage serialization and tolerant deserialization
"""
import pytest

from teashop.services.config_catalog import (
    CATEGORY_NAMES,
    CONFIG_DEFINITIONS,
    ConfigCategory,
    ConfigType,
    coerce_value,
    deserialize_value,
    serialize_value,
)
from teashop.utils.exceptions import TypeCoercionError

DEFINITIONS = {d.key: d for d in CONFIG_DEFINITIONS}


class TestCatalog:
    """Tests for the compiled-in catalog."""

    def test_keys_are_unique(self):
        """Test no key is declared twice."""
        keys = [d.key for d in CONFIG_DEFINITIONS]
        assert len(keys) == len(set(keys))

    def test_keys_are_namespaced_by_category(self):
        """Test every key starts with its category name."""
        for definition in CONFIG_DEFINITIONS:
            assert definition.key.split('.')[0] == definition.category.value

    def test_defaults_fit_declared_types(self):
        """Test each default survives its own coercion unchanged."""
        for definition in CONFIG_DEFINITIONS:
            assert coerce_value(definition, definition.default) == definition.default

    def test_every_category_has_names(self):
        """Test each category has zh/ru/en display names."""
        for category in ConfigCategory:
            assert set(CATEGORY_NAMES[category]) == {'zh', 'ru', 'en'}

    def test_points_defaults(self):
        """Test the loyalty defaults the rules engine relies on."""
        assert DEFINITIONS['points.spendPerPoint'].default == 30
        assert DEFINITIONS['points.levelBonus'].default['gold'] == 20
        assert DEFINITIONS['points.upgradeThreshold'].default == {
            'silver': 1000, 'gold': 5000, 'diamond': 10000
        }

    def test_definition_to_dict(self):
        data = DEFINITIONS['delivery.baseFee'].to_dict()
        assert data['type'] == 'number'
        assert data['category'] == 'delivery'
        assert data['defaultValue'] == 99


class TestCoercion:
    """Tests for coerce_value()."""

    def test_string_accepts_numbers(self):
        assert coerce_value(DEFINITIONS['brand.name'], 42) == '42'

    @pytest.mark.parametrize('value', [True, {'a': 1}, ['a'], None])
    def test_string_rejects_non_scalars(self, value):
        with pytest.raises(TypeCoercionError) as exc:
            coerce_value(DEFINITIONS['brand.name'], value)
        assert exc.value.key == 'brand.name'
        assert exc.value.expected_type == 'string'

    def test_number_parses_strings(self):
        definition = DEFINITIONS['delivery.baseFee']
        assert coerce_value(definition, '120') == 120
        assert coerce_value(definition, ' 12.5 ') == 12.5

    def test_number_integral_float_becomes_int(self):
        value = coerce_value(DEFINITIONS['delivery.baseFee'], 120.0)
        assert value == 120
        assert isinstance(value, int)

    @pytest.mark.parametrize('value', ['abc', True, float('nan'), float('inf'), [1], None])
    def test_number_rejects_invalid(self, value):
        with pytest.raises(TypeCoercionError) as exc:
            coerce_value(DEFINITIONS['delivery.baseFee'], value)
        assert exc.value.code == 'TYPE_COERCION_FAILED'

    @pytest.mark.parametrize('value,expected', [
        ('true', True), ('YES', True), ('on', True), ('1', True),
        ('false', False), ('off', False), ('0', False), ('', False),
        (1, True), (0, False), (True, True),
    ])
    def test_boolean_coercion(self, value, expected):
        assert coerce_value(DEFINITIONS['system.maintenanceMode'], value) is expected

    def test_json_accepts_object_and_string(self):
        definition = DEFINITIONS['delivery.estimatedTime']
        assert coerce_value(definition, {'min': 20, 'max': 40}) == {'min': 20, 'max': 40}
        assert coerce_value(definition, '{"min": 20, "max": 40}') == {'min': 20, 'max': 40}

    @pytest.mark.parametrize('value', [[1, 2], 'not json', '[1, 2]', 5])
    def test_json_rejects_non_objects(self, value):
        with pytest.raises(TypeCoercionError):
            coerce_value(DEFINITIONS['delivery.estimatedTime'], value)

    def test_array_accepts_list_and_string(self):
        definition = DEFINITIONS['delivery.zones']
        assert coerce_value(definition, ['center', 'north']) == ['center', 'north']
        assert coerce_value(definition, '["center"]') == ['center']

    def test_array_rejects_object(self):
        with pytest.raises(TypeCoercionError) as exc:
            coerce_value(DEFINITIONS['delivery.zones'], {'zone': 'center'})
        assert exc.value.expected_type == ConfigType.ARRAY.value

    @pytest.mark.parametrize('value', [
        {'normal': float('nan'), 'silver': 17, 'gold': 20, 'diamond': 25},
        '{"normal": NaN, "silver": 17, "gold": 20, "diamond": 25}',
        '{"silver": Infinity, "gold": 5000, "diamond": 10000}',
    ])
    def test_json_rejects_non_finite_numbers(self, value):
        """Test NaN/Infinity inside an object never reach storage."""
        with pytest.raises(TypeCoercionError) as exc:
            coerce_value(DEFINITIONS['points.levelBonus'], value)
        assert exc.value.expected_type == 'json'

    def test_array_rejects_non_finite_numbers(self):
        with pytest.raises(TypeCoercionError):
            coerce_value(DEFINITIONS['delivery.zones'], [1, float('inf')])


class TestSerialization:
    """Tests for storage (de)serialization."""

    def test_serialize_keeps_unicode(self):
        assert serialize_value('品牌') == '"品牌"'

    def test_serialize_rejects_nan(self):
        with pytest.raises(TypeCoercionError) as exc:
            serialize_value({'min': float('nan')}, 'delivery.estimatedTime', 'json')
        assert exc.value.key == 'delivery.estimatedTime'

    def test_deserialize_json_text(self):
        definition = DEFINITIONS['points.levelBonus']
        raw = serialize_value({'normal': 10, 'silver': 12, 'gold': 15, 'diamond': 20})
        assert deserialize_value(definition, raw)['gold'] == 15

    def test_deserialize_bare_string_row(self):
        """Test a hand-written row without JSON quotes still resolves."""
        assert deserialize_value(DEFINITIONS['brand.name'], 'CHU TEA Moscow') == 'CHU TEA Moscow'

    def test_deserialize_numeric_text_for_string_key(self):
        """Test a string key whose text looks like a number stays text."""
        assert deserialize_value(DEFINITIONS['brand.supportPhone'], '88005553535') == '88005553535'

    def test_deserialize_boolean_text(self):
        assert deserialize_value(DEFINITIONS['system.maintenanceMode'], 'true') is True

    def test_deserialize_invalid_raises(self):
        with pytest.raises(TypeCoercionError):
            deserialize_value(DEFINITIONS['delivery.baseFee'], 'lots')
