"""
Social / website link heuristics for verified contract source.

Token deployers often paste their website, Telegram and X handles into a
comment block at the top of the contract. extract_links() scans the source
for scheme://host/path tokens and fills three write-once slots.
"""
import re

from models import TokenLinks

# scheme://host[.sub].tld[/path...]; ASCII-only word chars
URL_PATTERN = re.compile(
    r"[\w+]+://(?:[\w-]+\.)*[\w-]+[.:]\w+(?:[/?=&#.]?[\w-]+)*/?",
    re.ASCII | re.MULTILINE,
)

# Etherscan's JSON source embeds literal "\n" escapes; the scheme group then
# swallows the "n" (e.g. "nhttps://t.me/foo").
LEADING_N_ARTIFACT = re.compile(r"^n(?=https?://)")

TELEGRAM_MARKERS = ('t.me',)
X_MARKERS = ('x.com', 'twitter.com')

# Registry, license and standards references that are never the project site
EXCLUDED_WEBSITE_MARKERS = (
    'etherscan',
    'basescan',
    'openzeppelin',
    'eips',
    'ethereum.org',
    'soliditylang',
    'spdx.org',
    'opensource.org',
    'gnu.org',
)

NUMERIC_ONLY = re.compile(r"^[\d.:/]+$")


def normalize_link(link: str) -> str:
    """Strip the spurious leading 'n' absorbed in front of http(s)://"""
    return LEADING_N_ARTIFACT.sub('', link)


def _is_telegram(link: str) -> bool:
    return any(marker in link for marker in TELEGRAM_MARKERS)


def _is_x(link: str) -> bool:
    return any(marker in link for marker in X_MARKERS)


def _strip_scheme(link: str) -> str:
    return link.split('://', 1)[-1]


def _is_project_website(link: str) -> bool:
    if any(marker in link for marker in EXCLUDED_WEBSITE_MARKERS):
        return False
    return not NUMERIC_ONLY.match(_strip_scheme(link))


def extract_links(source_code: str) -> TokenLinks:
    """
    Return the first telegram, x and website links found in source_code.

    Comparison is case-insensitive and links are returned lowercased.
    Each slot is write-once; scanning stops once all three are filled.
    """
    links = TokenLinks()
    if not source_code:
        return links

    for match in URL_PATTERN.finditer(source_code):
        link = normalize_link(match.group(0).lower())

        if _is_telegram(link):
            if not links.telegram:
                links.telegram = link
        elif _is_x(link):
            if not links.x:
                links.x = link
        elif not links.website and _is_project_website(link):
            links.website = link

        if links.is_complete():
            break

    return links
