"""
클라이언트 IP 추출 유틸리티.

프록시나 로드밸런서를 거치는 경우 실제 클라이언트 IP를 추출합니다.
"""
from typing import Optional

from fastapi import Request

# 순서대로 확인하는 프록시 헤더
_FORWARDED_HEADERS = (
    "X-Forwarded-For",
    "X-Real-IP",
    "CF-Connecting-IP",
    "True-Client-IP",
)


def get_client_ip(request: Request) -> Optional[str]:
    """
    요청에서 실제 클라이언트 IP를 추출합니다.

    X-Forwarded-For는 "client, proxy1, proxy2" 형식이므로 첫 번째 값을 사용합니다.
    헤더가 없으면 직접 연결된 주소를 반환합니다.

    Security:
        이 헤더들은 위조 가능하므로 신뢰할 수 있는 프록시에서만 설정되어야 합니다.
    """
    for header in _FORWARDED_HEADERS:
        value = request.headers.get(header)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        if candidate:
            return candidate

    if request.client:
        return request.client.host

    return None


def get_client_identifier(request: Request) -> str:
    """Rate limiting 키. IP를 알 수 없으면 "unknown"."""
    return get_client_ip(request) or "unknown"
