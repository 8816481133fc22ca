import logging
import uuid
from typing import Optional

import requests
from pydantic import BaseModel, ValidationError

from ..schemas import (
    ParsedRecipeOut, ParsedInitialData, ParsedImage, ParsedListItem, SiteInfo,
)
from ..settings import settings
from .errors import RecipeParseError

logger = logging.getLogger("recipebox.parser")


class ParserPayload(BaseModel):
    """Body returned by the external parser service."""
    title: str
    description: Optional[str] = ""
    image: Optional[str] = None
    author: Optional[str] = None
    ingredients: list[str] = []
    instructions_list: list[str] = []
    prep_time: Optional[float] = None
    cook_time: Optional[float] = None


def _list_items(values: list[str]) -> list[ParsedListItem]:
    return [
        ParsedListItem(id=str(uuid.uuid4()), name=v.strip(), is_header=False)
        for v in values
        if v and v.strip()
    ]


def fetch_parsed(url: str) -> ParserPayload:
    headers = {}
    if settings.parser_secret:
        headers["Authorization"] = settings.parser_secret
    try:
        res = requests.get(
            f"{settings.parser_url.rstrip('/')}/parse",
            params={"url": url},
            headers=headers,
            timeout=settings.parser_timeout_sec,
        )
        res.raise_for_status()
        return ParserPayload.model_validate(res.json())
    except (requests.RequestException, ValueError, ValidationError) as e:
        logger.warning(f"Parser failed for {url}: {e}")
        raise RecipeParseError("Unable to parse recipe") from e


def parse_recipe(url: str) -> ParsedRecipeOut:
    """Parse a recipe page into initial form data. All or nothing."""
    parsed = fetch_parsed(url)
    return ParsedRecipeOut(
        site_info=SiteInfo(url=url, author=parsed.author),
        initial_data=ParsedInitialData(
            name=parsed.title,
            description=parsed.description or "",
            image=ParsedImage(url_source_image=parsed.image, image_metadata=None),
            ingredients=_list_items(parsed.ingredients),
            steps=_list_items(parsed.instructions_list),
            prep_time=parsed.prep_time,
            cook_time=parsed.cook_time,
            is_public=False,
        ),
    )
