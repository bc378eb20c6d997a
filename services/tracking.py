"""
Helpers that prepare outgoing HTML: subscriber variables, open pixel,
click redirects and the unsubscribe footer.
"""

import html
import re
from urllib.parse import quote

from .directory import Subscriber, UserProfile

_LINK_RE = re.compile(r"""<a\s+href=(['"])([^'"]+)\1([^>]*)>""")


def substitute_variables(text: str, subscriber: Subscriber) -> str:
    name = str(subscriber.data.get("name") or "")
    return (
        text.replace("@Sub Name", name)
        .replace("@Sub Id", subscriber.id)
        .replace("@Sub Email", subscriber.email)
    )


def tracking_pixel(base_url: str, subscriber_id: str, send_id: str) -> str:
    return (
        f'<img src="{base_url}/api/metrics/track/pixel/{subscriber_id}?campaignId={send_id}" '
        'width="1" height="1" style="display:none;" alt="" />'
    )


def tracking_link(base_url: str, url: str, click_id: str) -> str:
    return f"{base_url}/api/metrics/track/redirect?url={quote(url, safe='')}&clickId={click_id}"


def add_tracking(content: str, base_url: str, subscriber_id: str, send_id: str) -> str:
    """Route every link through the click redirect and append the open pixel."""

    def _rewrite(match: re.Match) -> str:
        quote_char, url, rest = match.group(1), match.group(2), match.group(3)
        return f"<a href={quote_char}{tracking_link(base_url, url, send_id)}{quote_char}{rest}>"

    return _LINK_RE.sub(_rewrite, content) + tracking_pixel(base_url, subscriber_id, send_id)


def add_unsubscribe(content: str, base_url: str, send_id: str, profile: UserProfile) -> str:
    unsubscribe_url = f"{base_url}/api/unsubscribe/{send_id}"
    company = html.escape(profile.company_name or "")
    if profile.company_url:
        company = f'<a href="{html.escape(profile.company_url)}">{company or html.escape(profile.company_url)}</a>'
    footer = (
        '<div style="font-size:12px;color:#888;text-align:center;margin-top:24px;">'
        f"<p>{company}</p>"
        f"<p>{html.escape(profile.address or '')}</p>"
        f'<p><a href="{unsubscribe_url}">Unsubscribe</a></p>'
        "</div>"
    )
    return content + footer
