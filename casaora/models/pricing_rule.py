from datetime import date
from sqlalchemy import Column, String, Integer, Float, Boolean, Date, Text, event
from casaora.utils.validators import validate_pricing_rule
from .base import BaseModel

PRICING_RULE_FIELDS = (
    'service_category', 'city', 'commission_rate', 'background_check_fee_cop',
    'min_price_cop', 'max_price_cop', 'deposit_percentage', 'late_cancel_hours',
    'late_cancel_fee_percentage', 'effective_from', 'effective_until', 'is_active', 'notes'
)


class PricingRuleValidationError(ValueError):
    """Raised when a pricing rule violates its constraints"""
    pass


class PricingRule(BaseModel):
    __tablename__ = 'pricing_controls'

    # Scope, NULL means "any"
    service_category = Column(String(50), index=True)
    city = Column(String(100), index=True)

    # Fees
    commission_rate = Column(Float, nullable=False)  # 0.10 - 0.30
    background_check_fee_cop = Column(Integer, default=0, nullable=False)
    min_price_cop = Column(Integer)
    max_price_cop = Column(Integer)
    deposit_percentage = Column(Float)

    # Cancellation policy
    late_cancel_hours = Column(Integer, default=24, nullable=False)
    late_cancel_fee_percentage = Column(Float, default=0.5, nullable=False)

    # Lifecycle
    effective_from = Column(Date, default=date.today, nullable=False)
    effective_until = Column(Date)
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text)

    @property
    def is_default(self) -> bool:
        return self.service_category is None and self.city is None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'service_category': self.service_category,
            'city': self.city,
            'commission_rate': self.commission_rate,
            'background_check_fee_cop': self.background_check_fee_cop,
            'min_price_cop': self.min_price_cop,
            'max_price_cop': self.max_price_cop,
            'deposit_percentage': self.deposit_percentage,
            'late_cancel_hours': self.late_cancel_hours,
            'late_cancel_fee_percentage': self.late_cancel_fee_percentage,
            'effective_from': self.effective_from.isoformat() if self.effective_from else None,
            'effective_until': self.effective_until.isoformat() if self.effective_until else None,
            'is_active': self.is_active,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


@event.listens_for(PricingRule, 'before_insert')
@event.listens_for(PricingRule, 'before_update')
def _validate_before_write(mapper, connection, target):
    """Reject invalid rules at the persistence boundary"""
    valid, error = validate_pricing_rule({field: getattr(target, field) for field in PRICING_RULE_FIELDS})
    if not valid:
        raise PricingRuleValidationError(error)
