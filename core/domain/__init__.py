"""
Domain 패키지

도메인 엔티티, 예외, 포트 인터페이스를 정의합니다.
외부 의존성 없이 순수한 비즈니스 로직만 포함합니다.

주요 엔티티:
- Account: 메일함 계정과 자격 증명
- LockLease: 계정 단위 분산 락 임대
- Category: 분류 카테고리
- ProcessedItem: 처리된 메일 항목
- SyncOptions: 동기화 파이프라인 옵션
"""
