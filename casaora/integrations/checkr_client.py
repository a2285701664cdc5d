import base64
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from casaora.integrations.background_check_types import (
    BackgroundCheckProvider,
    BackgroundCheckResult,
    BackgroundCheckStatus,
    CheckRecord,
    CheckSection,
    CheckType,
    CreateCheckResponse,
    ProfessionalInfo,
    Recommendation,
    WebhookEvent,
    WebhookEventType,
)
from casaora.integrations.provider_base import BackgroundCheckProviderBase, parse_timestamp
from casaora.utils.logger import get_logger

logger = get_logger(__name__)

# Package covering the Colombian national criminal search
COLOMBIA_PACKAGE = 'colombian_national_criminal_search'


class CheckrClient(BackgroundCheckProviderBase):
    """Wrapper for Checkr background check operations"""

    provider = BackgroundCheckProvider.CHECKR
    default_base_url = "https://api.checkr.com/v1"
    signature_header = 'X-Checkr-Signature'
    credentials_endpoint = '/candidates'

    STATUS_MAP = {
        'pending': BackgroundCheckStatus.PENDING,
        'complete': BackgroundCheckStatus.CLEAR,
        'consider': BackgroundCheckStatus.CONSIDER,
        'suspended': BackgroundCheckStatus.SUSPENDED,
        'canceled': BackgroundCheckStatus.SUSPENDED,
    }

    WEBHOOK_TYPE_MAP = {
        'report.created': WebhookEventType.CHECK_CREATED,
        'report.completed': WebhookEventType.CHECK_COMPLETED,
        'report.updated': WebhookEventType.CHECK_UPDATED,
        'report.failed': WebhookEventType.CHECK_FAILED,
    }

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        # Checkr uses Basic Auth with API key as username
        auth_string = f"{self.api_key}:"
        encoded_auth = base64.b64encode(auth_string.encode()).decode()
        headers['Authorization'] = f"Basic {encoded_auth}"
        return headers

    def create_candidate(self, info: ProfessionalInfo) -> Dict:
        """Create a candidate for background check"""
        data = {
            'first_name': info.first_name,
            'middle_name': '',
            'last_name': info.last_name,
            'email': info.email,
            'phone': info.phone,
            'zipcode': info.address.postal_code if info.address else None,
            'dob': info.date_of_birth,  # Format: YYYY-MM-DD
            'copy_requested': False,
            # Colombian national ID (cedula) travels as the custom id
            'custom_id': info.document_id,
            'metadata': {
                'document_type': info.document_type,
                'document_id': info.document_id,
                'professional_id': info.professional_id
            }
        }

        return self._make_request('POST', '/candidates', data)

    def create_report(self, candidate_id: str, info: ProfessionalInfo, package: str = COLOMBIA_PACKAGE) -> Dict:
        """Create a background check report for an existing candidate"""
        data = {
            'candidate_id': candidate_id,
            'package': package,
            'metadata': {
                'professional_id': info.professional_id,
                'document_id': info.document_id
            }
        }

        return self._make_request('POST', '/reports', data)

    def _create_check(self, info: ProfessionalInfo) -> CreateCheckResponse:
        candidate = self.create_candidate(info)
        report = self.create_report(candidate['id'], info)

        return CreateCheckResponse(
            check_id=report['id'],
            provider_check_id=report['id'],
            provider=self.provider,
            estimated_completion_date=self._estimate_completion_date(report.get('tat'))
        )

    def _fetch_check(self, provider_check_id: str) -> Dict:
        return self._make_request('GET', f'/reports/{provider_check_id}')

    def _cancel_check(self, provider_check_id: str) -> None:
        self._make_request('DELETE', f'/reports/{provider_check_id}')

    def transform_result(self, data: Dict) -> BackgroundCheckResult:
        """Transform a Checkr report into the unified result"""
        status = self.transform_status(data.get('status'))
        now = datetime.utcnow()

        results = {}
        criminal_search = data.get('criminal_search')
        if criminal_search:
            results[CheckType.CRIMINAL] = CheckSection(
                status=self.transform_status(criminal_search.get('status')),
                records=[
                    CheckRecord(
                        description=', '.join(
                            charge['charge'] for charge in record.get('charges') or [] if charge.get('charge')
                        ) or 'Criminal record found',
                        date=record.get('file_date'),
                        severity=self._determine_severity(record.get('charges')),
                        details=record
                    )
                    for record in criminal_search.get('records') or []
                ]
            )

        national_id_search = data.get('national_id_search')
        if national_id_search:
            results[CheckType.IDENTITY] = CheckSection(
                status=self.transform_status(national_id_search.get('status')),
                records=[
                    CheckRecord(description='National ID verified', details=record)
                    for record in national_id_search.get('records') or []
                ]
            )

        return BackgroundCheckResult(
            id=data['id'],
            provider_check_id=data['id'],
            provider=self.provider,
            professional_id=(data.get('metadata') or {}).get('professional_id'),
            status=status,
            checks_performed=frozenset(results.keys()),
            results=results,
            recommendation=self._determine_recommendation(status),
            raw_data=data,
            created_at=parse_timestamp(data.get('created_at')) or now,
            updated_at=now,
            completed_at=parse_timestamp(data.get('completed_at'))
        )

    def _transform_webhook_event(self, data: Dict) -> WebhookEvent:
        envelope = data.get('data')
        obj = envelope.get('object') if isinstance(envelope, dict) else None
        obj = obj or data.get('object')
        if not isinstance(obj, dict):
            obj = {}
        check_id = obj.get('id') or data.get('id')

        return WebhookEvent(
            type=self.map_webhook_type(data.get('type')),
            provider=self.provider,
            check_id=check_id,
            provider_check_id=check_id,
            status=self.transform_status(obj.get('status') or data.get('status')),
            timestamp=datetime.utcnow(),
            data=data
        )

    def _estimate_completion_date(self, tat: Optional[str]) -> Optional[datetime]:
        """Turnaround time is reported in minutes"""
        if tat is None:
            return None
        try:
            minutes = int(tat)
        except (TypeError, ValueError):
            return None
        return datetime.utcnow() + timedelta(minutes=minutes)

    def _determine_severity(self, charges: Optional[List[Dict]]) -> str:
        if not charges:
            return 'low'

        severities = [(charge.get('severity') or '').lower() for charge in charges]
        if any('felony' in severity for severity in severities):
            return 'high'
        if any('misdemeanor' in severity for severity in severities):
            return 'medium'
        return 'low'

    def _determine_recommendation(self, status: BackgroundCheckStatus) -> Recommendation:
        if status == BackgroundCheckStatus.CLEAR:
            return Recommendation.APPROVED
        if status == BackgroundCheckStatus.SUSPENDED:
            return Recommendation.REJECTED
        return Recommendation.REVIEW_REQUIRED
