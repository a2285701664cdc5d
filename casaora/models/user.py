from sqlalchemy import Column, String, Boolean, Enum, DateTime, Text
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class UserRole(enum.Enum):
    CUSTOMER = "customer"
    PROFESSIONAL = "professional"
    ADMIN = "admin"


class SuspensionType(enum.Enum):
    TEMPORARY = "temporary"
    PERMANENT = "permanent"


class OnboardingStatus(enum.Enum):
    APPLICATION_PENDING = "application_pending"
    APPLICATION_IN_REVIEW = "application_in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(BaseModel):
    __tablename__ = 'users'

    # Basic Info
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(20))
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)

    # Identity (professionals)
    document_id = Column(String(50))
    document_type = Column(String(10))  # CC, CE, NIT, CI, DNI, PA
    date_of_birth = Column(String(10))  # YYYY-MM-DD

    # Location
    address = Column(String(500))
    city = Column(String(100))
    region = Column(String(100))
    postal_code = Column(String(20))
    country_code = Column(String(2), default='CO')

    # Status
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)
    verified_at = Column(DateTime)

    # Moderation
    is_suspended = Column(Boolean, default=False)
    suspension_type = Column(Enum(SuspensionType))
    suspension_reason = Column(Text)
    suspended_at = Column(DateTime)
    suspended_until = Column(DateTime)
    suspended_by = Column(String(36))

    # Professional onboarding
    onboarding_status = Column(Enum(OnboardingStatus), default=OnboardingStatus.APPLICATION_PENDING)
    documents_verified = Column(Boolean, default=False)
    interview_completed = Column(Boolean, default=False)
    background_check_status = Column(String(50))
    latest_background_check_id = Column(String(36))

    # Payment Info
    stripe_customer_id = Column(String(255))
    stripe_account_id = Column(String(255))  # Connected account for professional payouts

    # Relationships
    background_checks = relationship("BackgroundCheck", back_populates="professional", lazy='dynamic')

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
