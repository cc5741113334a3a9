import math
import re
from typing import Any, Dict, Iterable, List

from bson import ObjectId
from slugify import slugify


def generate_slug(text: str) -> str:
    return slugify(text)


def is_valid_object_id(value: str) -> bool:
    return isinstance(value, str) and ObjectId.is_valid(value)


def get_summary_from_content(content: str, max_length: int = 200) -> str:
    if len(content) <= max_length:
        return content

    summary = content[:max_length]
    last_space = summary.rfind(' ')

    if last_space != -1:
        summary = summary[:last_space]

    return summary.rstrip() + "..."


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Теги как множество: без пустых строк и повторов, порядок первого вхождения."""
    seen = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def build_search_regex(query: str) -> Dict[str, Any]:
    # Поиск подстроки, а не пользовательского регулярного выражения
    return {"$regex": re.escape(query), "$options": "i"}


def build_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_posts": total,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
