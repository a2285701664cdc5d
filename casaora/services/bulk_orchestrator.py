import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import requests
from casaora.utils.logger import get_logger
from casaora.utils.sanitization import sanitize_html

logger = get_logger(__name__)


class BulkAction(enum.Enum):
    SUSPEND = "suspend"
    VERIFY = "verify"
    MESSAGE = "message"
    EXPORT = "export"


class BulkOperationState(enum.Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    PROCESSING = "processing"
    SETTLED = "settled"


BULK_ENDPOINTS = {
    BulkAction.SUSPEND: '/api/admin/bulk/suspend',
    BulkAction.VERIFY: '/api/admin/bulk/verify',
    BulkAction.MESSAGE: '/api/admin/bulk/message',
}


@dataclass
class BulkOperationProgress:
    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)


DEFAULT_SUSPENSION_DAYS = 7


class BulkOperationError(ValueError):
    """Invalid parameters for a bulk action, or a batch the admin API did not accept"""

    def __init__(self, message: str, server_message: Optional[str] = None):
        super().__init__(message)
        self.server_message = server_message


def build_request_body(action: BulkAction, user_ids: List[str], **params) -> Tuple[str, Dict]:
    """Return the endpoint and JSON body for one batch"""
    body = {'user_ids': list(user_ids)}

    if action == BulkAction.SUSPEND:
        suspension_type = params.get('suspension_type', 'temporary')
        if suspension_type not in ('temporary', 'permanent'):
            raise BulkOperationError("Suspension type must be temporary or permanent")

        expires_at = None
        if suspension_type == 'temporary':
            duration_days = params.get('duration_days')
            if duration_days is None:
                duration_days = DEFAULT_SUSPENSION_DAYS
            try:
                duration_days = int(duration_days)
            except (TypeError, ValueError):
                raise BulkOperationError("Suspension duration must be a whole number of days")
            if duration_days < 1:
                raise BulkOperationError("Suspension duration must be at least one day")
            now = params.get('now') or datetime.utcnow()
            expires_at = (now + timedelta(days=duration_days)).isoformat()

        body.update({
            'reason': params.get('reason') or '',
            'type': suspension_type,
            'expires_at': expires_at
        })
    elif action == BulkAction.VERIFY:
        body['approved'] = True
    elif action == BulkAction.MESSAGE:
        body.update({
            'subject': params.get('subject') or '',
            'message': sanitize_html(params.get('message'))
        })
    else:
        raise BulkOperationError(f"No endpoint for bulk action: {action.value}")

    return BULK_ENDPOINTS[action], body


def log_notifier(level: str, message: str):
    """Default notifier, writes notifications to the application log"""
    if level == 'error':
        logger.error(message)
    elif level == 'warning':
        logger.warning(message)
    else:
        logger.info(message)


class BulkOperationOrchestrator:
    """
    Runs admin bulk actions against the admin API.

    One batch at a time moves through idle -> confirming -> processing ->
    settled -> idle. Each batch is a single POST; the server applies the
    action per user and answers with aggregate counts. Failures are reported
    through the notifier as one error message and never raised.
    """

    def __init__(self, base_url: str, api_token: str = None,
                 notifier: Callable[[str, str], None] = None, timeout: int = 30):
        self.base_url = base_url.rstrip('/')
        self.api_token = api_token
        self.notify = notifier or log_notifier
        self.timeout = timeout

        self.state = BulkOperationState.IDLE
        self.action: Optional[BulkAction] = None
        self.selected_user_ids: List[str] = []
        self.progress = BulkOperationProgress()

    def select_users(self, user_ids: Iterable[str]):
        # Keep selection order, drop duplicates
        self.selected_user_ids = list(dict.fromkeys(user_ids))

    def clear_selection(self):
        self.selected_user_ids = []

    def begin(self, action) -> bool:
        """Open the confirmation step for an action"""
        action = BulkAction(action)

        if self.state != BulkOperationState.IDLE:
            self.notify('warning', "A bulk operation is already open")
            return False

        if not self.selected_user_ids:
            self.notify('error', "Select at least one user")
            return False

        self.action = action
        self.progress = BulkOperationProgress()
        self.state = BulkOperationState.CONFIRMING
        return True

    def execute(self, **params) -> BulkOperationProgress:
        """Submit the confirmed action as one request"""
        if self.state != BulkOperationState.CONFIRMING:
            raise BulkOperationError(f"Cannot execute a bulk operation while {self.state.value}")

        if self.action == BulkAction.EXPORT:
            self.notify('info', "Export is coming soon")
            self.close()
            return self.progress

        user_ids = list(self.selected_user_ids)
        try:
            endpoint, body = build_request_body(self.action, user_ids, **params)
        except (BulkOperationError, ValueError) as e:
            self.notify('error', str(e))
            return self.progress

        self.state = BulkOperationState.PROCESSING
        self.progress = BulkOperationProgress(total=len(user_ids))

        try:
            self.progress = self._read_progress(self._post(endpoint, body), len(user_ids))
        except BulkOperationError as e:
            logger.error(f"Bulk {self.action.value} of {len(user_ids)} users failed: {e}")
            self.progress = BulkOperationProgress(total=len(user_ids))
            self.state = BulkOperationState.CONFIRMING
            self.notify('error', e.server_message or f"Failed to {self.action.value} users")
            return self.progress

        self.state = BulkOperationState.SETTLED
        self.clear_selection()

        logger.info(
            f"Bulk {self.action.value}: {self.progress.successful} succeeded, "
            f"{self.progress.failed} failed of {self.progress.total}"
        )
        if self.progress.failed:
            self.notify('warning', f"{self.progress.successful} users updated, {self.progress.failed} failed")
        else:
            self.notify('info', f"{self.progress.successful} users updated")

        return self.progress

    def close(self):
        """Dismiss the operation and reset form and progress"""
        self.state = BulkOperationState.IDLE
        self.action = None
        self.progress = BulkOperationProgress()

    def _post(self, endpoint: str, body: Dict) -> Dict:
        headers = {'Content-Type': 'application/json'}
        if self.api_token:
            headers['Authorization'] = f"Bearer {self.api_token}"

        try:
            response = requests.post(f"{self.base_url}{endpoint}", json=body, headers=headers,
                                     timeout=self.timeout)
        except requests.RequestException as e:
            raise BulkOperationError(f"Request failed: {e}")

        if not response.ok:
            raise BulkOperationError(f"Admin API returned {response.status_code}",
                                     server_message=self._error_message(response))

        try:
            data = response.json()
        except ValueError:
            raise BulkOperationError("Admin API returned invalid JSON")

        if not isinstance(data, dict):
            raise BulkOperationError("Admin API returned an unexpected response")

        return data

    @staticmethod
    def _error_message(response) -> Optional[str]:
        try:
            data = response.json()
        except ValueError:
            return None
        if isinstance(data, dict) and isinstance(data.get('error'), str) and data['error'].strip():
            return data['error'].strip()
        return None

    @staticmethod
    def _read_progress(data: Dict, total: int) -> BulkOperationProgress:
        """Build settled progress from the server's aggregate counts"""
        try:
            successful = int(data.get('successful') or 0)
            failed = int(data.get('failed') or 0)
        except (TypeError, ValueError):
            raise BulkOperationError("Admin API returned non-numeric counts")

        if successful < 0 or failed < 0:
            raise BulkOperationError("Admin API returned negative counts")

        errors = data.get('errors') or []
        if not isinstance(errors, list) or not all(isinstance(error, dict) for error in errors):
            raise BulkOperationError("Admin API returned malformed per-user errors")

        return BulkOperationProgress(
            total=total,
            processed=total,
            successful=successful,
            failed=failed,
            errors=errors
        )
