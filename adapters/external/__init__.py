"""
외부 서비스 어댑터 패키지

메일 제공자, OAuth, 분류 서비스 등 외부 API와의 통신을 담당하는 어댑터들을 포함합니다.
"""

from .encryption_service import EncryptionServiceAdapter
from .gemini_classifier import GeminiClassifierAdapter
from .gmail_api_client import GmailApiClientAdapter
from .google_oauth_client import GoogleOAuthClientAdapter
from .unsubscribe_executor import HttpUnsubscribeExecutorAdapter

__all__ = [
    "EncryptionServiceAdapter",
    "GeminiClassifierAdapter",
    "GmailApiClientAdapter",
    "GoogleOAuthClientAdapter",
    "HttpUnsubscribeExecutorAdapter",
]
