# recipe_api/services/utils.py
# 폼/쿼리 문자열 정리 유틸
# - 일부 클라이언트가 값 양끝에 따옴표/백슬래시를 붙여 보냄 → "\"Pasta\"" 같은 입력을 "Pasta"로 정리

from __future__ import annotations
from typing import Callable, List

# 폼 필드 양끝에서 벗겨낼 문자: 큰따옴표, 작은따옴표, 공백, 백슬래시
_FIELD_JUNK = "\"' \\"

def clean_field(value: str) -> str:
    return (value or "").strip(_FIELD_JUNK).strip()

def split_csv(value: str, clean: Callable[[str], str] = str.strip) -> List[str]:
    """쉼표 구분 문자열 → 정리된 토큰 리스트 (빈 토큰 제거, 순서 유지)"""
    out: List[str] = []
    for part in (value or "").split(","):
        t = clean(part)
        if t:
            out.append(t)
    return out

def split_ingredients(value: str) -> List[str]:
    # 생성 폼용: 전체 문자열과 각 재료 모두 따옴표/백슬래시 정리
    return split_csv(clean_field(value), clean=clean_field)

def dedupe(items: List[str]) -> List[str]:
    seen, out = set(), []
    for s in items:
        if s not in seen:
            seen.add(s)
            out.append(s)
    return out
