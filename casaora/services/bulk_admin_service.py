from datetime import datetime
from typing import Dict, List, Optional
from casaora.database import get_db
from casaora.models import User
from casaora.models.user import SuspensionType, UserRole
from casaora.integrations import SendGridClient
from casaora.utils.logger import get_logger
from casaora.utils.sanitization import sanitize_html

logger = get_logger(__name__)


class BulkOperationResult:
    """Aggregate outcome of a bulk admin action"""

    def __init__(self):
        self.successful = 0
        self.failed = 0
        self.errors = []

    def success(self):
        self.successful += 1

    def failure(self, user_id: str, error: str):
        self.failed += 1
        self.errors.append({'userId': user_id, 'error': error})

    def to_dict(self) -> Dict:
        return {
            'successful': self.successful,
            'failed': self.failed,
            'errors': self.errors
        }


class BulkAdminService:
    """Service applying one admin action to many users"""

    def __init__(self, email_client: SendGridClient = None):
        self.email_client = email_client or SendGridClient()

    def suspend_users(self, admin_id: str, user_ids: List[str], reason: str,
                      suspension_type: str, expires_at: Optional[datetime] = None) -> Dict:
        """Suspend each user; admins and unknown ids are reported per user"""
        if not reason or not reason.strip():
            return {'error': 'Suspension reason is required'}

        try:
            suspension_type = SuspensionType(suspension_type)
        except ValueError:
            return {'error': 'Suspension type must be temporary or permanent'}

        if suspension_type == SuspensionType.TEMPORARY:
            if not expires_at:
                return {'error': 'Temporary suspensions require an expiry date'}
            if expires_at <= datetime.utcnow():
                return {'error': 'Suspension expiry must be in the future'}
        else:
            expires_at = None

        result = BulkOperationResult()
        now = datetime.utcnow()

        with get_db() as db:
            for user_id in user_ids:
                user = db.query(User).filter_by(id=user_id).first()
                if not user:
                    result.failure(user_id, 'User not found')
                    continue
                if user.role == UserRole.ADMIN:
                    result.failure(user_id, 'Admins cannot be suspended')
                    continue

                user.is_suspended = True
                user.is_active = False
                user.suspension_type = suspension_type
                user.suspension_reason = reason.strip()
                user.suspended_at = now
                user.suspended_until = expires_at
                user.suspended_by = admin_id
                result.success()

        logger.info(
            f"Admin {admin_id} suspended {result.successful}/{len(user_ids)} users "
            f"({suspension_type.value}), {result.failed} failed"
        )
        return result.to_dict()

    def verify_users(self, admin_id: str, user_ids: List[str], approved: bool = True) -> Dict:
        """Mark users verified, or clear verification when approved is False"""
        result = BulkOperationResult()
        now = datetime.utcnow()

        with get_db() as db:
            for user_id in user_ids:
                user = db.query(User).filter_by(id=user_id).first()
                if not user:
                    result.failure(user_id, 'User not found')
                    continue

                user.is_verified = approved
                user.verified_at = now if approved else None
                result.success()

        logger.info(
            f"Admin {admin_id} {'verified' if approved else 'unverified'} "
            f"{result.successful}/{len(user_ids)} users, {result.failed} failed"
        )
        return result.to_dict()

    def message_users(self, admin_id: str, user_ids: List[str], subject: str, message: str) -> Dict:
        """Email each user; the body is sanitized before it is sent"""
        if not subject or not subject.strip():
            return {'error': 'Message subject is required'}

        body = sanitize_html(message)
        if not body.strip():
            return {'error': 'Message body is required'}

        with get_db() as db:
            recipients = {
                user.id: (user.email, user.first_name)
                for user in db.query(User).filter(User.id.in_(user_ids)).all()
            }

        result = BulkOperationResult()
        for user_id in user_ids:
            recipient = recipients.get(user_id)
            if not recipient:
                result.failure(user_id, 'User not found')
                continue

            sent = self.email_client.send_admin_message(recipient[0], recipient[1], subject.strip(), body)
            if sent:
                result.success()
            else:
                result.failure(user_id, 'Failed to send email')

        logger.info(f"Admin {admin_id} messaged {result.successful}/{len(user_ids)} users, {result.failed} failed")
        return result.to_dict()
