"""Extract a program's brand colours, fonts and logo from a website."""

from typing import Any, Dict, Optional

import httpx

from app.core.ai_gateway import AIGatewayClient, tool_spec
from app.core.config import settings
from app.core.exceptions import AIGatewayError, APIClientError, ValidationError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

MAX_HTML_CHARS = 50_000

BOT_PROTECTION_STATUSES = (401, 403, 503)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Ch-Ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}

SYSTEM_PROMPT = """You are a brand identity extraction expert. Analyze the provided HTML and extract the brand's visual identity. Return a JSON object with the following structure:
{
  "colors": {
    "primary": "HSL value like '0 85% 52%'",
    "secondary": "HSL value",
    "accent": "HSL value",
    "background": "HSL value",
    "foreground": "HSL value",
    "muted": "HSL value",
    "success": "HSL value (use a green)",
    "warning": "HSL value (use an orange/yellow)",
    "destructive": "HSL value (use a red)"
  },
  "fonts": {
    "primary": "Font family name",
    "heading": "Font family name for headings"
  },
  "borderRadius": "CSS value like '0.5rem'",
  "logoUrl": "URL of the main logo if found, or null"
}

Extract colors from:
- CSS variables
- Inline styles
- Link colors, button colors
- Background colors
- Brand elements

Convert all colors to HSL format (just the values, like "0 85% 52%" without the hsl() wrapper).
If you can't find a specific color, make an educated guess based on the overall brand feel."""


def _hsl(description: str) -> Dict[str, str]:
    return {"type": "string", "description": f"{description} in HSL format"}


EXTRACT_BRANDING_TOOL = tool_spec(
    name="extract_branding",
    description="Extract brand identity from website",
    parameters={
        "type": "object",
        "properties": {
            "colors": {
                "type": "object",
                "properties": {
                    "primary": _hsl("Primary brand color"),
                    "secondary": _hsl("Secondary color"),
                    "accent": _hsl("Accent color"),
                    "background": _hsl("Background color"),
                    "foreground": _hsl("Text color"),
                    "muted": _hsl("Muted background color"),
                    "success": _hsl("Success color"),
                    "warning": _hsl("Warning color"),
                    "destructive": _hsl("Error/destructive color"),
                },
                "required": ["primary", "secondary", "accent", "background", "foreground"],
            },
            "fonts": {
                "type": "object",
                "properties": {
                    "primary": {"type": "string", "description": "Primary font family"},
                    "heading": {"type": "string", "description": "Heading font family"},
                },
                "required": ["primary"],
            },
            "borderRadius": {"type": "string", "description": "Border radius value"},
            "logoUrl": {"type": "string", "description": "URL of the logo if found"},
        },
        "required": ["colors", "fonts"],
    },
)


class WebsiteBlockedError(APIClientError):
    """The site refused an automated fetch."""

    def __init__(self, status_code: int):
        super().__init__(
            f"Website blocked ({status_code}). This site has bot protection. "
            "Please use the 'Paste HTML' method instead.",
            status_code=200,
        )
        self.upstream_status = status_code


class BrandingService:
    def __init__(self, ai_client: AIGatewayClient):
        self.ai_client = ai_client

    async def fetch_html(self, url: str) -> str:
        """Download a page the way a desktop browser would request it.

        Raises:
            WebsiteBlockedError: On 401, 403 or 503
            APIClientError: On any other failure
        """
        LOGGER.info("Fetching website", extra={"url": url})
        try:
            async with httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True) as client:
                response = await client.get(url, headers=BROWSER_HEADERS)
        except httpx.HTTPError as e:
            raise APIClientError(f"Failed to fetch website: {e}", original_error=e) from e

        if response.status_code in BOT_PROTECTION_STATUSES:
            LOGGER.info(f"Website blocked with status {response.status_code}")
            raise WebsiteBlockedError(response.status_code)
        if response.status_code >= 400:
            raise APIClientError(f"Failed to fetch website: {response.status_code}")
        return response.text

    async def extract_branding(
        self,
        url: Optional[str] = None,
        html: Optional[str] = None,
        source_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Ask the model for the brand identity of a page.

        Args:
            url: Page to fetch when ``html`` is not given
            html: Page markup pasted by the user
            source_url: Where pasted markup came from, for the prompt only

        Returns:
            success, branding and sourceUrl; or success false with
            errorCode BOT_PROTECTION when the site blocks the fetch
        """
        if not url and not html:
            raise ValidationError("URL or HTML content is required")

        target_url = url or source_url or "provided-html"
        if html:
            LOGGER.info("Using provided HTML content")
        else:
            try:
                html = await self.fetch_html(url)
            except WebsiteBlockedError as e:
                return {"success": False, "error": e.message, "errorCode": "BOT_PROTECTION"}

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    "Analyze this website HTML and extract the brand identity:\n\n"
                    f"URL: {target_url}\n\nHTML:\n{html[:MAX_HTML_CHARS]}"
                ),
            },
        ]
        branding = await self.ai_client.call_tool(messages, EXTRACT_BRANDING_TOOL)
        if not branding:
            raise AIGatewayError("No branding data extracted")

        LOGGER.info("Branding extracted", extra={"source_url": target_url})
        return {"success": True, "branding": branding, "sourceUrl": target_url}
