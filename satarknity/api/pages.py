"""
HTML rendering for the landing page.

Shows a configuration warning, a login prompt, or the report form and feed,
depending on backend configuration and the signed-in user.
"""

from html import escape
from typing import Optional

from satarknity.backend.auth_api import User
from satarknity.incidents.feed import FeedSnapshot, FeedStatus, MediaKind, classify_media, format_timestamp
from satarknity.incidents.form import IncidentForm

_STYLE = """
body { font-family: Arial; max-width: 900px; margin: 40px auto; padding: 20px; background: #f6f7fb; color: #1f2937; }
h1 span { color: #6d28d9; }
.card { background: #fff; border-radius: 8px; padding: 16px; margin: 12px 0; box-shadow: 0 1px 3px rgba(0,0,0,.1); }
.warning { background: #fee2e2; color: #991b1b; padding: 12px; border-radius: 6px; }
.meta { color: #6b7280; font-size: 13px; }
.media { display: grid; grid-template-columns: 1fr 1fr; gap: 8px; margin-top: 8px; }
.media img, .media video { width: 100%; height: 160px; object-fit: cover; border-radius: 6px; }
.unsupported { display: flex; align-items: center; justify-content: center; height: 160px; background: #e5e7eb; border-radius: 6px; }
"""


def _page(body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <title>Satarknity</title>
    <style>{_STYLE}</style>
</head>
<body>
    <header>
        <h1><span>Satar</span>knity</h1>
        <p class="meta">Community Safety Alerts</p>
    </header>
    {body}
    <footer class="meta"><p>Stay safe, stay informed.</p></footer>
</body>
</html>"""


def render_media(url: str) -> str:
    kind = classify_media(url)
    src = escape(url, quote=True)
    if kind == MediaKind.IMAGE:
        return f'<img src="{src}" alt="Incident media">'
    if kind == MediaKind.VIDEO:
        return f'<video src="{src}" controls></video>'
    return '<div class="unsupported">Unsupported media</div>'


def render_feed(snapshot: FeedSnapshot) -> str:
    parts = ["<h2>Recent Community Alerts</h2>"]

    if snapshot.status == FeedStatus.ERROR:
        parts.append(
            '<div class="warning">Could not load incident reports. Please try again later.</div>'
        )
    elif snapshot.status == FeedStatus.LOADING:
        parts.append('<div class="card meta">Loading...</div>')

    if snapshot.is_empty:
        parts.append(
            '<div class="card"><h3>No incidents reported yet</h3>'
            '<p class="meta">When community members report safety incidents, '
            'they will appear here.</p></div>'
        )

    for incident in snapshot.incidents:
        media = ""
        if incident.media_urls:
            media = '<div class="media">' + "".join(render_media(u) for u in incident.media_urls) + "</div>"
        parts.append(
            f'<div class="card">'
            f"<h3>Safety Alert #{incident.id}</h3>"
            f'<p class="meta">{escape(format_timestamp(incident.created_at))} · '
            f"{escape(incident.location)}</p>"
            f'<p style="white-space: pre-wrap">{escape(incident.description)}</p>'
            f"{media}</div>"
        )

    return "\n".join(parts)


def render_form(form: IncidentForm) -> str:
    readonly = " readonly" if form.location_locked else ""
    staged = len(form.attachments)
    return f"""
    <div class="card">
        <h2>Report a Safety Incident</h2>
        <p class="meta">Share information about safety concerns or incidents in your area</p>
        <p><label>Description<br><textarea name="description" rows="5" cols="60">{escape(form.description)}</textarea></label></p>
        <p><label>Location<br><input name="location" size="60" value="{escape(form.location, quote=True)}"{readonly}></label></p>
        <p class="meta">{staged}/{form.attachments.max_attachments} files added</p>
        <p class="meta">Submit via <code>POST /api/v1/form/submit</code></p>
    </div>"""


def render_login() -> str:
    return """
    <div class="card">
        <h2>Sign In</h2>
        <p class="meta">Sign in to share safety alerts with your community</p>
        <p>Use <code>POST /api/v1/auth/sign-in</code> or <code>POST /api/v1/auth/sign-up</code>
        with an email and password.</p>
    </div>"""


def render_index(
    configured: bool,
    user: Optional[User],
    form: Optional[IncidentForm] = None,
    snapshot: Optional[FeedSnapshot] = None,
) -> str:
    """Landing page for the current visitor."""
    if not configured:
        return _page(
            '<div class="warning">Supabase configuration is missing. '
            "Please connect to Supabase to use this feature.</div>"
            '<div class="card"><h2>Community Safety Alert</h2>'
            '<p class="meta">Connect to Supabase to enable community safety alerts</p></div>'
        )

    if user is None:
        return _page(render_login())

    body = f'<p class="meta">Signed in as {escape(user.email or user.id)}</p>'
    if form is not None:
        body += render_form(form)
    if snapshot is not None:
        body += render_feed(snapshot)
    return _page(body)
