"""
Gemini 분류 서비스 어댑터

Gemini generateContent API로 메일 분류, 요약, 구독 해지 링크 추출을 수행합니다.
할당량 초과와 API 키 미설정은 QuotaExceededError로 알립니다.
"""

from typing import List, Optional

import httpx

from core.domain.entities import Category
from core.domain.exceptions import ClassificationError, QuotaExceededError
from core.domain.ports import ClassifierPort, LoggerPort

QUOTA_MARKERS = ("resource_exhausted", "quota", "rate limit")
NOT_FOUND_MARKER = "NOT_FOUND"


def _truncate(content: str, limit: int) -> str:
    return content if len(content) <= limit else content[:limit] + "..."


class GeminiClassifierAdapter(ClassifierPort):
    """Gemini 분류 서비스 어댑터"""

    def __init__(
        self,
        api_key: Optional[str],
        logger: LoggerPort,
        model: str = "gemini-2.0-flash",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.logger = logger
        self.model = model
        self.base_url = "https://generativelanguage.googleapis.com/v1beta/models"
        self.timeout = 30.0
        self.transport = transport

        if not api_key:
            self.logger.warning("Gemini API 키가 설정되지 않았습니다. 모든 메일이 Unsorted로 저장됩니다.")

    async def classify(self, content: str, categories: List[Category]) -> Optional[str]:
        """카테고리 설명을 기준으로 메일을 분류합니다."""
        category_lines = "".join(
            f"- {category.name}: {category.description or ''}\n" for category in categories
        )
        prompt = (
            "Classify the following email into one of these categories based on their descriptions:\n\n"
            f"{category_lines}\n\n"
            f"Email content:\n{_truncate(content, 2000)}\n\n"
            "Respond with ONLY the category name, nothing else."
        )

        result = await self._generate(prompt, max_tokens=50, temperature=0.3, operation="메일 분류")
        return result.strip().strip("\"'`") if result else None

    async def summarize(self, content: str) -> Optional[str]:
        """메일을 2~3문장으로 요약합니다."""
        prompt = (
            "Summarize the following email in 2-3 sentences. "
            "Focus on the main point and any action items:\n\n"
            f"{_truncate(content, 3000)}"
        )
        result = await self._generate(prompt, max_tokens=150, temperature=0.5, operation="메일 요약")
        return result.strip() if result else None

    async def extract_unsubscribe_link(self, content: str) -> Optional[str]:
        """본문에서 구독 해지 링크를 추출합니다."""
        prompt = (
            "Extract the unsubscribe URL from this email. Look for links that contain "
            "'unsubscribe', 'opt-out', or similar terms. Return ONLY the URL, nothing else. "
            f"If no unsubscribe link is found, return '{NOT_FOUND_MARKER}'.\n\n"
            f"Email:\n{_truncate(content, 2000)}"
        )
        result = await self._generate(prompt, max_tokens=200, temperature=0.1, operation="구독 해지 링크 추출")
        if not result:
            return None

        link = result.replace('"', "").replace("'", "").replace("`", "").strip()
        return link if link.startswith("http") else None

    async def _generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        operation: str,
    ) -> Optional[str]:
        """generateContent를 호출하고 첫 번째 후보의 텍스트를 반환합니다."""
        if not self.api_key:
            raise QuotaExceededError("Gemini API 키가 설정되지 않았습니다")

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/{self.model}:generateContent",
                    json=body,
                    headers={"x-goog-api-key": self.api_key},
                )
        except httpx.HTTPError as e:
            error_msg = f"Gemini {operation} 요청 실패: {str(e)}"
            self.logger.error(error_msg)
            raise ClassificationError(error_msg) from e

        if response.status_code != 200:
            error_msg = f"Gemini {operation} 실패: {response.status_code} - {response.text}"
            if response.status_code == 429 or any(
                marker in response.text.lower() for marker in QUOTA_MARKERS
            ):
                self.logger.warning(error_msg)
                raise QuotaExceededError(error_msg)
            self.logger.error(error_msg)
            raise ClassificationError(error_msg)

        try:
            candidates = response.json().get("candidates") or []
            return candidates[0]["content"]["parts"][0]["text"]
        except (ValueError, LookupError, TypeError) as e:
            error_msg = f"Gemini {operation} 응답 형식 오류: {response.text}"
            self.logger.error(error_msg)
            raise ClassificationError(error_msg) from e
