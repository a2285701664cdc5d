from .logger import setup_logger, get_logger
from .security import generate_token, verify_token, compute_hmac_sha256, constant_time_compare
from .validators import validate_user_ids, validate_pricing_rule, parse_date
from .sanitization import sanitize_html, sanitize_text

__all__ = [
    'setup_logger', 'get_logger',
    'generate_token', 'verify_token', 'compute_hmac_sha256', 'constant_time_compare',
    'validate_user_ids', 'validate_pricing_rule', 'parse_date',
    'sanitize_html', 'sanitize_text'
]
