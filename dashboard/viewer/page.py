"""Browser page state (visibility, width) handed to the Python side.

Streamlit has no API for either, so a small script in a zero-height component
writes them into the page's query string whenever they change. Every rerun,
including the timed reruns of the live fragment, carries the current query
string, where :func:`read_page_signal` picks them up.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

HIDDEN_PARAM: Final[str] = "hidden"
WIDTH_PARAM: Final[str] = "width"

PAGE_SIGNAL_SCRIPT: Final[str] = f"""
<script>
(function() {{
  const win = window.parent;
  const doc = win && win.document;
  if (!doc) return;
  function publish() {{
    const url = new URL(win.location.href);
    url.searchParams.set("{HIDDEN_PARAM}", doc.hidden ? "1" : "0");
    url.searchParams.set("{WIDTH_PARAM}", String(win.innerWidth));
    win.history.replaceState(win.history.state, "", url.toString());
  }}
  // A rerun recreates this frame; drop the listeners of the previous one
  if (win.__airMonitorPublish) {{
    doc.removeEventListener("visibilitychange", win.__airMonitorPublish);
    win.removeEventListener("resize", win.__airMonitorPublish);
  }}
  win.__airMonitorPublish = publish;
  doc.addEventListener("visibilitychange", publish);
  win.addEventListener("resize", publish);
  publish();
}})();
</script>
"""


@dataclass(frozen=True)
class PageSignal:
    visible: bool = True
    width: int | None = None


def read_page_signal(params: Mapping[str, str]) -> PageSignal:
    """Page state from query parameters; missing or garbled values mean visible, width unknown."""
    visible = str(params.get(HIDDEN_PARAM, "0")).strip() != "1"
    width: int | None = None
    raw = params.get(WIDTH_PARAM)
    if raw is not None:
        try:
            width = int(str(raw).strip())
        except ValueError:
            width = None
        if width is not None and width <= 0:
            width = None
    return PageSignal(visible=visible, width=width)
