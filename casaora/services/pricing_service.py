from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple
from casaora.database import DatabaseManager, get_db
from casaora.models import PricingRule
from casaora.models.pricing_rule import PRICING_RULE_FIELDS
from casaora.utils.logger import get_logger
from casaora.utils.validators import parse_date, validate_pricing_rule

logger = get_logger(__name__)


class PricingConfigurationError(Exception):
    """No pricing rule applies; the global default rule is missing"""
    pass


def _normalize(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value.casefold() if value else None


def rule_specificity(rule, service_category: Optional[str], city: Optional[str]) -> Optional[int]:
    """
    Rank a rule against a (category, city) query.

    3 = category and city, 2 = category only, 1 = city only, 0 = global.
    Returns None when a scoped field does not match the query.
    """
    rule_category = _normalize(rule.service_category)
    rule_city = _normalize(rule.city)

    if rule_category is not None and rule_category != _normalize(service_category):
        return None
    if rule_city is not None and rule_city != _normalize(city):
        return None

    return (2 if rule_category is not None else 0) + (1 if rule_city is not None else 0)


def is_effective(rule, on_date: date) -> bool:
    if not rule.is_active:
        return False
    if rule.effective_from and rule.effective_from > on_date:
        return False
    if rule.effective_until and rule.effective_until < on_date:
        return False
    return True


def select_pricing_rule(rules: Iterable, service_category: Optional[str], city: Optional[str],
                        on_date: date = None):
    """Pick the most specific active rule whose effective window contains on_date"""
    on_date = on_date or date.today()

    best, best_key = None, None
    for rule in rules:
        if not is_effective(rule, on_date):
            continue
        rank = rule_specificity(rule, service_category, city)
        if rank is None:
            continue
        key = (rank, rule.effective_from or date.min)
        if best_key is None or key > best_key:
            best, best_key = rule, key

    if best is None:
        raise PricingConfigurationError(
            f"No pricing rule applies to category={service_category!r}, city={city!r} on {on_date}; "
            f"an active default rule must exist"
        )

    return best


class PricingService:
    """Service for commission and fee rules"""

    def __init__(self):
        self.rule_db = DatabaseManager(PricingRule)

    def resolve_rule(self, service_category: Optional[str], city: Optional[str],
                     on_date: date = None) -> PricingRule:
        """Resolve the applicable rule, raising PricingConfigurationError when none exists"""
        return select_pricing_rule(self.rule_db.filter(is_active=True), service_category, city, on_date)

    def check_default_rule(self) -> bool:
        """Startup check that an active global rule is in place"""
        try:
            rule = select_pricing_rule(self.rule_db.filter(is_active=True), None, None)
        except PricingConfigurationError:
            logger.critical("No active default pricing rule; bookings cannot be priced")
            return False

        logger.info(f"Default pricing rule {rule.id} active with commission {rule.commission_rate:.0%}")
        return True

    def calculate_booking_fees(self, amount_cop: int, service_category: Optional[str],
                               city: Optional[str], on_date: date = None) -> Dict:
        """Break a booking amount down into commission, fees and the professional's payout"""
        rule = self.resolve_rule(service_category, city, on_date)

        if rule.min_price_cop is not None and amount_cop < rule.min_price_cop:
            return {'error': f"Amount is below the minimum price of {rule.min_price_cop} COP"}
        if rule.max_price_cop is not None and amount_cop > rule.max_price_cop:
            return {'error': f"Amount is above the maximum price of {rule.max_price_cop} COP"}

        commission = int(round(amount_cop * rule.commission_rate))
        deposit = int(round(amount_cop * rule.deposit_percentage)) if rule.deposit_percentage else 0

        return {
            'rule_id': rule.id,
            'amount_cop': amount_cop,
            'commission_rate': rule.commission_rate,
            'commission_cop': commission,
            'background_check_fee_cop': rule.background_check_fee_cop or 0,
            'deposit_cop': deposit,
            'professional_payout_cop': amount_cop - commission
        }

    def calculate_late_cancellation_fee(self, amount_cop: int, hours_before_start: float,
                                        rule: PricingRule) -> int:
        """Fee charged when a booking is cancelled inside the rule's late window"""
        if hours_before_start >= rule.late_cancel_hours:
            return 0
        return int(round(amount_cop * rule.late_cancel_fee_percentage))

    def list_rules(self, include_inactive: bool = True) -> List[PricingRule]:
        with get_db() as db:
            query = db.query(PricingRule)
            if not include_inactive:
                query = query.filter(PricingRule.is_active.is_(True))
            return query.order_by(PricingRule.service_category, PricingRule.city,
                                  PricingRule.effective_from.desc()).all()

    def create_rule(self, data: Dict) -> Tuple[Optional[PricingRule], Optional[str]]:
        """Create a rule after validation; returns (rule, error)"""
        fields, error = self._clean_fields(data)
        if error:
            return None, error

        valid, error = validate_pricing_rule(fields)
        if not valid:
            return None, error

        rule = self.rule_db.create(**fields)
        logger.info(
            f"Created pricing rule {rule.id} (category={rule.service_category}, city={rule.city}, "
            f"commission={rule.commission_rate})"
        )
        return rule, None

    def update_rule(self, rule_id: str, data: Dict) -> Tuple[Optional[PricingRule], Optional[str]]:
        """Update a rule; the merged rule is validated before writing"""
        rule = self.rule_db.get(rule_id)
        if not rule:
            return None, "Pricing rule not found"

        changes, error = self._clean_fields(data)
        if error:
            return None, error

        merged = {field: getattr(rule, field) for field in PRICING_RULE_FIELDS}
        merged.update(changes)

        valid, error = validate_pricing_rule(merged)
        if not valid:
            return None, error

        rule = self.rule_db.update(rule_id, **changes)
        logger.info(f"Updated pricing rule {rule_id}: {sorted(changes)}")
        return rule, None

    def set_rule_active(self, rule_id: str, is_active: bool) -> Tuple[Optional[PricingRule], Optional[str]]:
        """Activate or deactivate a rule; rules are never deleted"""
        rule = self.rule_db.get(rule_id)
        if not rule:
            return None, "Pricing rule not found"

        rule = self.rule_db.update(rule_id, is_active=is_active)

        if rule.is_default and not is_active:
            # Deactivating a default is allowed, but pricing may be left without one
            self.check_default_rule()

        logger.info(f"Pricing rule {rule_id} {'activated' if is_active else 'deactivated'}")
        return rule, None

    def _clean_fields(self, data: Dict) -> Tuple[Dict, Optional[str]]:
        fields = {key: value for key, value in data.items() if key in PRICING_RULE_FIELDS}

        for key in ('service_category', 'city'):
            if key in fields:
                fields[key] = (fields[key] or '').strip() or None

        try:
            for key in ('effective_from', 'effective_until'):
                if key in fields:
                    fields[key] = parse_date(fields[key])
        except ValueError:
            return {}, "Invalid effective date"

        if 'effective_from' in fields and fields['effective_from'] is None:
            del fields['effective_from']

        return fields, None
