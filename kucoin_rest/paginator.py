"""자동 페이지네이션 모듈 - 페이지 번호/커서 방식 순차 조회 및 집계"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from kucoin_rest.exceptions import PaginationCancelled
from kucoin_rest.models import PageFields, PaginatedResult, PaginationState

logger = logging.getLogger(__name__)

DEFAULT_PAGE_CEILING = 1000  # max_pages 무제한일 때의 하드 상한

FetchPage = Callable[[dict[str, Any]], Awaitable[Any]]


def flatten_items(items: list[Any]) -> list[Any]:
    """기본 집계 함수 - 누적된 아이템 리스트 그대로"""
    return list(items)


def _page_items(page: Any, fields: PageFields) -> list[Any]:
    if isinstance(page, list):
        return page
    if not isinstance(page, dict):
        return []
    items = page.get(fields.items)
    return list(items) if items else []


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def page_metadata(page: Any, fields: PageFields) -> dict[str, Any]:
    """마지막 페이지의 페이지네이션 정보 추출"""
    if not isinstance(page, dict):
        return {}
    if fields.cursor_style:
        return {fields.cursor: page.get(fields.cursor)}
    return {
        name: page.get(name)
        for name in (fields.current_page, fields.page_size, fields.total_num, fields.total_page)
        if name in page
    }


def _advance(state: PaginationState, page: Any, fields: PageFields) -> bool:
    """다음 페이지용 query 갱신. 더 진행할 수 없으면 False."""
    if not isinstance(page, dict):
        return False

    if fields.cursor_style:
        cursor = page.get(fields.cursor)
        if cursor is None:
            return False
        if cursor in state.seen_cursors:
            logger.warning(f"[페이지] 커서 반복 감지 ({fields.cursor}={cursor}), 중단")
            return False
        state.seen_cursors.add(cursor)
        state.query[fields.cursor] = cursor
        return True

    current = _as_int(page.get(fields.current_page))
    total = _as_int(page.get(fields.total_page))
    if current is None or total is None or current >= total:
        return False
    if state.last_page_number is not None and current <= state.last_page_number:
        logger.warning(
            f"[페이지] 페이지 번호가 진행하지 않음 "
            f"(이전={state.last_page_number}, 현재={current}), 중단"
        )
        return False
    state.last_page_number = current
    state.query[fields.current_page] = current + 1
    return True


async def paginate(fetch_page: FetchPage,
                   initial_query: dict[str, Any] | None = None,
                   fields: PageFields = PageFields(),
                   aggregate: Callable[[list[Any]], Any] = flatten_items,
                   max_pages: int | None = None,
                   page_ceiling: int = DEFAULT_PAGE_CEILING,
                   cancel_event: asyncio.Event | None = None) -> PaginatedResult:
    """페이지를 순서대로 조회하며 아이템을 누적하고 aggregate 로 집계.

    Args:
        fetch_page: query 딕셔너리를 받아 페이지(data) 를 반환하는 코루틴 함수
        initial_query: 첫 페이지 query (페이지 방식은 보통 currentPage=1 포함)
        fields: 아이템/페이지/커서 필드 이름
        aggregate: 누적 아이템 전체 → 최종 결과. 아이템이 없어도 호출된다.
        max_pages: 최대 조회 페이지 수 (None = 무제한, page_ceiling 으로 제한)
        page_ceiling: 비정상 서버 대비 하드 반복 상한
        cancel_event: 설정되면 다음 페이지 조회 전에 PaginationCancelled

    Returns:
        PaginatedResult(data, 마지막 페이지 메타데이터, 조회 페이지 수)
    """
    if max_pages is not None and max_pages < 1:
        raise ValueError("max_pages must be at least 1")
    limit = page_ceiling if max_pages is None else min(max_pages, page_ceiling)

    state = PaginationState(query=dict(initial_query or {}))
    last_page: Any = None

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise PaginationCancelled(state.pages_fetched)

        try:
            page = await fetch_page(dict(state.query))
        except Exception as e:
            e.add_note(f"Failed to fetch page {state.pages_fetched + 1} (query={state.query})")
            raise
        state.pages_fetched += 1
        last_page = page

        items = _page_items(page, fields)
        state.accumulated_items.extend(items)

        if not items:
            break
        if state.pages_fetched >= limit:
            if max_pages is None:
                logger.warning(f"[페이지] 하드 상한 {page_ceiling} 페이지 도달, 중단")
            break
        if not _advance(state, page, fields):
            break

    logger.debug(
        f"[페이지] 완료: {state.pages_fetched}페이지, {len(state.accumulated_items)}건"
    )
    return PaginatedResult(
        data=aggregate(state.accumulated_items),
        pagination=page_metadata(last_page, fields),
        pages_fetched=state.pages_fetched,
    )
