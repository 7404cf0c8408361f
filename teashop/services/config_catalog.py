"""
Compiled-in catalog of runtime-tunable settings.

Every key the registry will ever admit is declared here with its category,
declared value type and default. The catalog is immutable after import;
admins can only override values, never add keys.

Each ConfigType has an explicit coercion function. Values coming from the
admin console or from storage pass through coerce_value() so malformed input
is rejected at the boundary with a TypeCoercionError.
"""
import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from ..utils.exceptions import TypeCoercionError


class ConfigCategory(str, Enum):
    """Admin console sections."""
    BRAND = 'brand'
    POINTS = 'points'
    DELIVERY = 'delivery'
    ORDER = 'order'
    COUPON = 'coupon'
    MEMBER = 'member'
    MARKETING = 'marketing'
    SYSTEM = 'system'


class ConfigType(str, Enum):
    """Declared value type of a config key."""
    STRING = 'string'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    JSON = 'json'      # JSON object
    ARRAY = 'array'


CATEGORY_NAMES = {
    ConfigCategory.BRAND: {'zh': '品牌设置', 'ru': 'Настройки бренда', 'en': 'Brand Settings'},
    ConfigCategory.POINTS: {'zh': '积分系统', 'ru': 'Система баллов', 'en': 'Points System'},
    ConfigCategory.DELIVERY: {'zh': '配送设置', 'ru': 'Настройки доставки', 'en': 'Delivery Settings'},
    ConfigCategory.ORDER: {'zh': '订单设置', 'ru': 'Настройки заказа', 'en': 'Order Settings'},
    ConfigCategory.COUPON: {'zh': '优惠券设置', 'ru': 'Настройки купонов', 'en': 'Coupon Settings'},
    ConfigCategory.MEMBER: {'zh': '会员设置', 'ru': 'Настройки членства', 'en': 'Member Settings'},
    ConfigCategory.MARKETING: {'zh': '营销设置', 'ru': 'Маркетинговые настройки', 'en': 'Marketing Settings'},
    ConfigCategory.SYSTEM: {'zh': '系统设置', 'ru': 'Системные настройки', 'en': 'System Settings'},
}


@dataclass(frozen=True)
class ConfigDefinition:
    """Catalog entry for one config key."""
    key: str
    category: ConfigCategory
    name: str
    description: str
    value_type: ConfigType
    default: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'category': self.category.value,
            'name': self.name,
            'description': self.description,
            'type': self.value_type.value,
            'defaultValue': self.default,
        }


def _define(key, category, name, description, value_type, default) -> ConfigDefinition:
    return ConfigDefinition(
        key=key,
        category=ConfigCategory(category),
        name=name,
        description=description,
        value_type=ConfigType(value_type),
        default=default,
    )


CONFIG_DEFINITIONS: List[ConfigDefinition] = [
    # ==================== Brand ====================
    _define('brand.name', 'brand', '品牌名称',
            'Brand name shown throughout the app', 'string', 'CHU TEA'),
    _define('brand.slogan', 'brand', '品牌标语',
            'Slogan shown on the home page', 'string', '品味生活，从一杯茶开始'),
    _define('brand.website', 'brand', '官方网站',
            'Official website URL', 'string', 'https://www.chutea.cc'),
    _define('brand.supportEmail', 'brand', '客服邮箱',
            'Customer support email', 'string', 'support@chutea.cc'),
    _define('brand.supportPhone', 'brand', '客服电话',
            'Customer support phone', 'string', '+7 (XXX) XXX-XXXX'),

    # ==================== Points ====================
    _define('points.spendPerPoint', 'points', '消费积分比例',
            'Rubles spent per 1 point earned', 'number', 30),
    _define('points.levelBonus', 'points', '会员等级积分加成',
            'Bonus points percentage per member tier', 'json',
            {'normal': 15, 'silver': 17, 'gold': 20, 'diamond': 25}),
    _define('points.upgradeThreshold', 'points', '会员升级门槛',
            'Cumulative spend (rubles) required for each tier', 'json',
            {'silver': 1000, 'gold': 5000, 'diamond': 10000}),
    _define('points.maxRedeemPerOrder', 'points', '单笔订单最大抵扣比例',
            'Max share of an order payable with points (percent)', 'number', 50),
    _define('points.pointsToRuble', 'points', '积分兑换比例',
            'Points needed to discount 1 ruble', 'number', 100),

    # ==================== Delivery ====================
    _define('delivery.baseFee', 'delivery', '基础配送费',
            'Default delivery fee (rubles)', 'number', 99),
    _define('delivery.freeThreshold', 'delivery', '免配送费门槛',
            'Order amount above which delivery is free (rubles)', 'number', 500),
    _define('delivery.maxDistance', 'delivery', '最大配送距离',
            'Maximum delivery distance (meters)', 'number', 5000),
    _define('delivery.estimatedTime', 'delivery', '预计配送时间',
            'Estimated delivery window (minutes)', 'json', {'min': 30, 'max': 60}),
    _define('delivery.zones', 'delivery', '配送区域',
            'Named delivery zones offered at checkout', 'array', []),

    # ==================== Order ====================
    _define('order.minAmount', 'order', '最低起送金额',
            'Minimum order amount (rubles)', 'number', 100),
    _define('order.autoCompleteMinutes', 'order', '订单自动完成时间',
            'Minutes after delivery before an order auto-completes', 'number', 60),
    _define('order.autoCancelMinutes', 'order', '未支付自动取消时间',
            'Minutes before an unpaid order is cancelled', 'number', 30),

    # ==================== Coupon ====================
    _define('coupon.newUserCouponId', 'coupon', '新用户优惠券',
            'Coupon template issued on signup (0 = none)', 'number', 0),
    _define('coupon.newUserCouponQuantity', 'coupon', '新用户优惠券数量',
            'Number of signup coupons issued', 'number', 1),
    _define('coupon.maxPerOrder', 'coupon', '单笔订单最多使用数量',
            'Maximum coupons per order', 'number', 1),

    # ==================== Member ====================
    _define('member.birthdayPointsBonus', 'member', '生日积分奖励',
            'Points granted on a member birthday', 'number', 100),
    _define('member.referralPoints', 'member', '推荐奖励积分',
            'Points granted to the referrer', 'number', 200),
    _define('member.refereePoints', 'member', '被推荐人积分',
            'Points granted to the referred new member', 'number', 100),

    # ==================== Marketing ====================
    _define('marketing.firstOrderPoints', 'marketing', '首单奖励积分',
            'Points granted after the first order', 'number', 100),
    _define('marketing.reviewPoints', 'marketing', '评价奖励积分',
            'Points granted for an order review', 'number', 10),

    # ==================== System ====================
    _define('system.maintenanceMode', 'system', '维护模式',
            'Show the maintenance page to customers', 'boolean', False),
    _define('system.maintenanceMessage', 'system', '维护提示信息',
            'Message shown in maintenance mode', 'string', '系统正在维护中，请稍后再试'),
    _define('system.defaultLanguage', 'system', '默认语言',
            'Default language (zh/ru/en)', 'string', 'ru'),
]


# ==================== Coercion ====================

TRUE_STRINGS = ('true', '1', 'yes', 'on')
FALSE_STRINGS = ('false', '0', 'no', 'off', '')


def _coerce_string(key: str, value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise TypeCoercionError(key, ConfigType.STRING.value, value)


def _coerce_number(key: str, value: Any):
    if isinstance(value, bool):
        raise TypeCoercionError(key, ConfigType.NUMBER.value, value)

    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise TypeCoercionError(key, ConfigType.NUMBER.value, value)

    if not isinstance(value, (int, float)):
        raise TypeCoercionError(key, ConfigType.NUMBER.value, value)

    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise TypeCoercionError(key, ConfigType.NUMBER.value, value)
        if value.is_integer():
            return int(value)
    return value


def _coerce_boolean(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return bool(value)


def _parse_structure(key: str, value: Any, expected: type, config_type: ConfigType):
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise TypeCoercionError(key, config_type.value, value)
    if not isinstance(value, expected):
        raise TypeCoercionError(key, config_type.value, value)
    # NaN/Infinity literals parse but cannot be stored or compared
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        raise TypeCoercionError(key, config_type.value, value)
    return value


def _coerce_json(key: str, value: Any) -> dict:
    return _parse_structure(key, value, dict, ConfigType.JSON)


def _coerce_array(key: str, value: Any) -> list:
    return _parse_structure(key, value, list, ConfigType.ARRAY)


COERCERS: Dict[ConfigType, Callable[[str, Any], Any]] = {
    ConfigType.STRING: _coerce_string,
    ConfigType.NUMBER: _coerce_number,
    ConfigType.BOOLEAN: _coerce_boolean,
    ConfigType.JSON: _coerce_json,
    ConfigType.ARRAY: _coerce_array,
}


def coerce_value(definition: ConfigDefinition, value: Any) -> Any:
    """
    Coerce a raw value to the definition's declared type.

    Raises:
        TypeCoercionError: If the value cannot be represented in that type
    """
    return COERCERS[definition.value_type](definition.key, value)


def serialize_value(value: Any, key: str = None, value_type: str = None) -> str:
    """
    Serialize a coerced value for the system_configs.value column.

    Raises:
        TypeCoercionError: If the value holds NaN or infinity
    """
    try:
        return json.dumps(value, ensure_ascii=False, allow_nan=False)
    except ValueError:
        raise TypeCoercionError(key, value_type, value)


def deserialize_value(definition: ConfigDefinition, raw: str) -> Any:
    """
    Decode a stored value and coerce it to the declared type.

    Rows written by hand may hold bare strings, so undecodable JSON is passed
    to the coercer as the raw text.
    """
    try:
        decoded = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        decoded = raw
    if definition.value_type == ConfigType.STRING and not isinstance(decoded, str):
        decoded = raw
    return coerce_value(definition, decoded)
