"""
Markup helpers shared by the extractors.
"""

from bs4 import BeautifulSoup


def strip_html(html: str) -> str:
    """
    Derive plain text from an HTML fragment.

    Drops script/style blocks, keeps one line per text block and
    removes blank lines.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())
