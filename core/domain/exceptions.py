"""
도메인 예외 정의

유즈케이스가 구분해서 처리해야 하는 오류들을 정의합니다.
"""


class MailSyncError(Exception):
    """메일 동기화 기본 예외"""


class ReauthenticationRequiredError(MailSyncError):
    """리프레시 토큰이 없어 사용자 재인증이 필요한 경우"""


class TokenRefreshError(MailSyncError):
    """토큰 갱신 실패"""


class UnauthorizedError(MailSyncError):
    """메일 제공자가 401을 반환한 경우"""


class CursorInvalidError(MailSyncError):
    """동기화 커서가 만료되었거나 거부된 경우"""


class QuotaExceededError(MailSyncError):
    """분류 서비스 할당량 초과"""


class ClassificationError(MailSyncError):
    """분류 서비스 호출 실패 (할당량 이외)"""


class DuplicateItemError(MailSyncError):
    """(계정, 외부 ID) 항목이 이미 저장되어 있는 경우"""
