from typing import Dict, Optional
from config.config import Config
from casaora.database import get_db
from casaora.models import BackgroundCheck, User
from casaora.models.user import OnboardingStatus, UserRole
from casaora.integrations import SendGridClient
from casaora.integrations.background_check_types import (
    Address,
    BackgroundCheckError,
    BackgroundCheckResult,
    BackgroundCheckStatus,
    ErrorCode,
    ProfessionalInfo,
    Recommendation,
)
from casaora.integrations.provider_factory import BackgroundCheckProviderFactory
from casaora.utils.logger import get_logger

logger = get_logger(__name__)

# Errors worth retrying against the fallback provider
FALLBACK_ERROR_CODES = (ErrorCode.PROVIDER_ERROR, ErrorCode.NETWORK_ERROR)


class BackgroundCheckService:
    """Service for running professional background checks"""

    def __init__(self, provider_factory: BackgroundCheckProviderFactory, email_client: SendGridClient = None):
        self.provider_factory = provider_factory
        self.email_client = email_client or SendGridClient()

    def initiate_check(self, professional_id: str, country_code: str = None) -> Dict:
        """Start a background check for a professional and record it"""
        with get_db() as db:
            professional = db.query(User).filter_by(id=professional_id).first()
            if not professional:
                return {'error': 'Professional not found'}
            if professional.role != UserRole.PROFESSIONAL:
                return {'error': 'User is not a professional'}
            if not professional.document_id:
                return {'error': 'Professional has no identity document on file'}

            pending = db.query(BackgroundCheck).filter_by(
                professional_id=professional_id,
                status=BackgroundCheckStatus.PENDING.value
            ).first()
            if pending:
                return {'error': 'A background check is already in progress', 'background_check_id': pending.id}

            info = self._build_professional_info(professional)

        try:
            if country_code:
                provider = self.provider_factory.get_provider_for_country(country_code)
            else:
                provider = self.provider_factory.get_provider()
        except BackgroundCheckError as e:
            logger.error(f"No provider available for professional {professional_id}: {e.message}")
            return e.to_dict()

        result = provider.create_check(info)

        if not result.success and result.error_code in FALLBACK_ERROR_CODES:
            fallback = self.provider_factory.get_fallback_provider()
            if fallback and fallback.provider != provider.provider:
                logger.warning(
                    f"{provider.name} failed for professional {professional_id}, retrying with {fallback.name}"
                )
                result = fallback.create_check(info)

        if not result.success:
            return result.error.to_dict()

        response = result.value

        with get_db() as db:
            check = BackgroundCheck(
                professional_id=professional_id,
                provider=response.provider.value,
                provider_check_id=response.provider_check_id,
                status=BackgroundCheckStatus.PENDING.value,
                estimated_completion_at=response.estimated_completion_date
            )
            db.add(check)
            db.flush()

            professional = db.query(User).filter_by(id=professional_id).first()
            professional.background_check_status = BackgroundCheckStatus.PENDING.value
            professional.latest_background_check_id = check.id
            check_id = check.id

        logger.info(f"Background check {check_id} started with {response.provider.value} for {professional_id}")

        return {
            'background_check_id': check_id,
            'provider': response.provider.value,
            'provider_check_id': response.provider_check_id,
            'estimated_completion_date': (
                response.estimated_completion_date.isoformat() if response.estimated_completion_date else None
            )
        }

    def refresh_check(self, background_check_id: str) -> Dict:
        """Poll the provider for the latest state of a check"""
        with get_db() as db:
            check = db.query(BackgroundCheck).filter_by(id=background_check_id).first()
            if not check:
                return {'error': 'Background check not found'}
            provider_name, provider_check_id = check.provider, check.provider_check_id

        try:
            provider = self.provider_factory.get_provider_by_name(provider_name)
        except BackgroundCheckError as e:
            return e.to_dict()

        result = provider.get_check_status(provider_check_id)
        if not result.success:
            return result.error.to_dict()

        return self.apply_result(result.value)

    def cancel_check(self, background_check_id: str) -> Dict:
        """Cancel a pending check at the provider"""
        with get_db() as db:
            check = db.query(BackgroundCheck).filter_by(id=background_check_id).first()
            if not check:
                return {'error': 'Background check not found'}
            if check.status != BackgroundCheckStatus.PENDING.value:
                return {'error': 'Only pending checks can be cancelled'}
            provider_name, provider_check_id = check.provider, check.provider_check_id

        try:
            provider = self.provider_factory.get_provider_by_name(provider_name)
        except BackgroundCheckError as e:
            return e.to_dict()

        result = provider.cancel_check(provider_check_id)
        if not result.success:
            return result.error.to_dict()

        with get_db() as db:
            check = db.query(BackgroundCheck).filter_by(id=background_check_id).first()
            check.status = BackgroundCheckStatus.SUSPENDED.value

        return {'background_check_id': background_check_id, 'status': BackgroundCheckStatus.SUSPENDED.value}

    def update_status(self, provider_check_id: str, status: BackgroundCheckStatus,
                      result_data: Dict = None) -> bool:
        """Record a status reported by a webhook without fetching the full result"""
        with get_db() as db:
            check = db.query(BackgroundCheck).filter_by(provider_check_id=provider_check_id).first()
            if not check:
                logger.warning(f"Status update for unknown check {provider_check_id}")
                return False

            check.status = status.value
            if result_data is not None:
                check.result_data = result_data

            professional = db.query(User).filter_by(id=check.professional_id).first()
            if professional and professional.latest_background_check_id == check.id:
                professional.background_check_status = status.value

        return True

    def apply_result(self, result: BackgroundCheckResult, notify: bool = True) -> Dict:
        """Persist a provider result and move the professional's onboarding along"""
        with get_db() as db:
            check = db.query(BackgroundCheck).filter_by(provider_check_id=result.provider_check_id).first()
            if not check:
                logger.warning(f"Result received for unknown check {result.provider_check_id}")
                return {'error': 'Background check not found'}

            previous_status = check.status
            check.status = result.status.value
            check.recommendation = result.recommendation.value
            check.checks_performed = sorted(c.value for c in result.checks_performed)
            check.results = {c.value: section.to_dict() for c, section in result.results.items()}
            check.result_data = result.raw_data
            check.completed_at = result.completed_at

            professional = db.query(User).filter_by(id=check.professional_id).first()
            if professional:
                professional.background_check_status = result.status.value
                professional.latest_background_check_id = check.id
                decision = self._apply_onboarding_decision(professional, result)
                contact = (professional.email, professional.first_name)
            else:
                decision, contact = None, None

            check_id = check.id

        settled = result.status != BackgroundCheckStatus.PENDING
        if notify and settled and previous_status != result.status.value and contact:
            self.email_client.send_background_check_completed_email(
                contact[0], contact[1], result.status.value, result.recommendation.value
            )

        logger.info(f"Background check {check_id} is {result.status.value} ({result.recommendation.value})")

        return {
            'background_check_id': check_id,
            'status': result.status.value,
            'recommendation': result.recommendation.value,
            'onboarding_decision': decision
        }

    def refresh_pending_checks(self) -> int:
        """Poll every pending check; returns how many settled"""
        with get_db() as db:
            pending_ids = [
                check.id for check in db.query(BackgroundCheck).filter_by(
                    status=BackgroundCheckStatus.PENDING.value
                ).all()
            ]

        settled = 0
        for check_id in pending_ids:
            result = self.refresh_check(check_id)
            if result.get('error'):
                logger.error(f"Could not refresh background check {check_id}: {result['error']}")
            elif result['status'] != BackgroundCheckStatus.PENDING.value:
                settled += 1

        logger.info(f"Refreshed {len(pending_ids)} pending background checks, {settled} settled")
        return settled

    def _apply_onboarding_decision(self, professional: User, result: BackgroundCheckResult) -> Optional[str]:
        """Reject, flag or approve based on the check outcome"""
        if result.status == BackgroundCheckStatus.SUSPENDED or result.recommendation == Recommendation.REJECTED:
            professional.onboarding_status = OnboardingStatus.REJECTED
            professional.is_active = False
            logger.info(f"Rejected professional {professional.id} after background check")
            return 'rejected'

        if result.status == BackgroundCheckStatus.CONSIDER or result.recommendation == Recommendation.REVIEW_REQUIRED:
            professional.onboarding_status = OnboardingStatus.APPLICATION_IN_REVIEW
            logger.info(f"Flagged professional {professional.id} for manual review")
            return 'review'

        if result.status == BackgroundCheckStatus.CLEAR and result.recommendation == Recommendation.APPROVED:
            # Only approve once the rest of onboarding is done
            if professional.documents_verified and professional.interview_completed:
                professional.onboarding_status = OnboardingStatus.APPROVED
                professional.is_active = True
                logger.info(f"Auto-approved professional {professional.id}")
                return 'approved'

        return None

    def _build_professional_info(self, professional: User) -> ProfessionalInfo:
        return ProfessionalInfo(
            professional_id=professional.id,
            first_name=professional.first_name,
            last_name=professional.last_name,
            email=professional.email,
            phone=professional.phone,
            document_id=professional.document_id,
            document_type=professional.document_type or 'CC',
            date_of_birth=professional.date_of_birth,
            address=Address(
                street=professional.address,
                city=professional.city,
                region=professional.region,
                postal_code=professional.postal_code,
                country=professional.country_code or Config.DEFAULT_COUNTRY_CODE
            )
        )
