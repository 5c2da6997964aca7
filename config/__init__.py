"""
Config 패키지

설정 관리를 위한 포트/어댑터 패턴 구현
- 어댑터: Pydantic Settings 기반 환경 변수/.env 로딩
- Factory: ENVIRONMENT 값에 따른 설정 클래스 선택
- 노드 ID: 분산 락 보유자 식별값 결정
"""
