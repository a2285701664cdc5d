from sqlalchemy import Column, String, ForeignKey, DateTime, JSON
from sqlalchemy.orm import relationship
from .base import BaseModel


class BackgroundCheck(BaseModel):
    __tablename__ = 'background_checks'

    professional_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)

    # Provider details
    provider = Column(String(20), nullable=False)  # checkr, truora
    provider_check_id = Column(String(255), unique=True, index=True)

    # Status, always derived from the provider's status vocabulary
    status = Column(String(50), default='pending')  # pending, clear, consider, suspended
    recommendation = Column(String(50))  # approved, review_required, rejected

    # Dates
    estimated_completion_at = Column(DateTime)
    completed_at = Column(DateTime)

    # Results
    checks_performed = Column(JSON)
    results = Column(JSON)
    result_data = Column(JSON)  # Raw provider payload

    # Relationships
    professional = relationship("User", back_populates="background_checks")
