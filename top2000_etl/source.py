"""HTTP access to the ranking source document."""

import asyncio
import logging
from typing import Any

import aiohttp

from . import config
from .errors import MalformedSourceError, SourceUnavailableError, UnexpectedContentTypeError


logger = logging.getLogger(__name__)


async def fetch(
    session: aiohttp.ClientSession, url: str, **kwargs: Any
) -> str | dict[str, Any]:
    """
    Asynchronously fetches content from a given URL using an aiohttp session.

    This function sends an asynchronous HTTP GET request to the specified URL. It handles responses
    with content types of 'text/html', 'application/json' or 'text/javascript'. For 'text/html', it
    returns the raw text response. For the other two, it returns the response parsed as JSON; the
    metadata catalog serves its JSON as 'text/javascript'.

    Parameters:
        session (aiohttp.ClientSession): The HTTP client session for making requests.
        url (str): The URL to fetch data from.
        **kwargs (Any): Additional keyword arguments to be passed to the session.get() method.

    Returns:
        str | dict[str, Any]: The content of the response, either as a string (for HTML content) or
            as a dictionary (for JSON content).

    Raises:
        aiohttp.ClientError: If an HTTP request fails.
        UnexpectedContentTypeError: If the response's content type is none of the handled types.
    """
    logger.debug("Fetching '%s'.", url)
    async with session.get(url, **kwargs) as response:
        response: aiohttp.ClientResponse
        response.raise_for_status()

        content_type = response.headers.get("Content-Type", "")
        if "text/html" in content_type:
            logger.debug("Fetch for '%s' has content of 'text/html' type.", url)
            return await response.text()
        if "application/json" in content_type or "text/javascript" in content_type:
            logger.debug("Fetch for '%s' has content of '%s' type.", url, content_type)
            return await response.json(content_type=None)

        raise UnexpectedContentTypeError(
            f"Content type '{content_type}' was not expected."
        )


async def fetch_source_document(
    session: aiohttp.ClientSession,
    api_url: str = config.SOURCE_API_URL,
    page: str = config.SOURCE_PAGE,
) -> str:
    """
    Fetches the rendered markup of the source article through the MediaWiki parse API.

    Parameters:
        session (aiohttp.ClientSession): The HTTP client session for making requests.
        api_url (str): The URL of the parse API.
        page (str): The title of the article.

    Returns:
        str: The rendered article markup.

    Raises:
        SourceUnavailableError: If the request fails or returns a non-success status.
        MalformedSourceError: If the response does not contain the rendered article text.
    """
    params = {"action": "parse", "page": page, "prop": "text", "format": "json"}
    try:
        data = await fetch(session, api_url, params=params)
    except (aiohttp.ClientError, asyncio.TimeoutError) as error:
        raise SourceUnavailableError(f"Fetching '{page}' failed: {error}") from error
    except (UnexpectedContentTypeError, ValueError) as error:
        raise MalformedSourceError(f"Response for '{page}' is not JSON: {error}") from error

    try:
        markup = data["parse"]["text"]["*"]
    except (KeyError, TypeError) as error:
        raise MalformedSourceError(
            f"Response for '{page}' has no rendered article text."
        ) from error

    if not isinstance(markup, str):
        raise MalformedSourceError(f"Rendered article text for '{page}' is not a string.")
    logger.info("Fetched source document '%s' (%d characters).", page, len(markup))
    return markup
