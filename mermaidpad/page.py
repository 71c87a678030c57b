"""HTML shell for the primary preview, the detached viewer, and static output."""

from __future__ import annotations

import html
import json
import os
from pathlib import Path

SVG_PAN_ZOOM_CDN = "https://cdn.jsdelivr.net/npm/svg-pan-zoom@3.6.1/dist/svg-pan-zoom.min.js"


def resolve_local_panzoom_script() -> Path | None:
    """Locate a local svg-pan-zoom bundle to use before the CDN."""
    env_value = os.environ.get("MERMAIDPAD_SVG_PAN_ZOOM_JS", "").strip()
    candidates: list[Path] = []
    if env_value:
        candidates.append(Path(env_value).expanduser())
    app_dir = Path(__file__).resolve().parent
    candidates.extend(
        [
            app_dir / "vendor" / "svg-pan-zoom.min.js",
            app_dir / "assets" / "svg-pan-zoom.min.js",
            Path("/usr/share/javascript/svg-pan-zoom/svg-pan-zoom.min.js"),
            Path("/usr/share/nodejs/svg-pan-zoom/dist/svg-pan-zoom.min.js"),
        ]
    )
    for candidate in candidates:
        try:
            if candidate.is_file():
                return candidate.resolve()
        except OSError:
            continue
    return None


def panzoom_script_source() -> str:
    local = resolve_local_panzoom_script()
    return local.as_uri() if local is not None else SVG_PAN_ZOOM_CDN


_BRIDGE_SCRIPT = """
window.mermaidpad = (() => {
  let instance = null;
  const options = {
    controlIconsEnabled: true,
    zoomEnabled: true,
    panEnabled: true,
    mouseWheelZoomEnabled: true,
    preventMouseEventsDefault: true,
    minZoom: 0.4,
    maxZoom: 12,
    fit: true,
    center: true,
    zoomScaleSensitivity: 0.6
  };
  const surface = () => document.getElementById("surface");
  const ensureViewBox = (svg) => {
    if (svg.getAttribute("viewBox")) return;
    try {
      const box = svg.getBBox();
      if (box && box.width && box.height) {
        svg.setAttribute("viewBox", `0 0 ${box.width} ${box.height}`);
      }
    } catch (err) {
      // getBBox is unavailable until the graphic is laid out.
    }
  };
  return {
    mount(markup) {
      this.destroy();
      surface().innerHTML = markup;
    },
    fill(id, markup) {
      const target = document.getElementById(id);
      if (!target) return false;
      target.innerHTML = markup;
      return true;
    },
    attach() {
      this.destroy();
      const svg = surface().querySelector(".diagram-root svg");
      if (!svg || !window.svgPanZoom) return false;
      ensureViewBox(svg);
      instance = window.svgPanZoom(svg, options);
      return true;
    },
    call(name) {
      if (instance && typeof instance[name] === "function") instance[name]();
    },
    destroy() {
      if (instance) {
        instance.destroy();
        instance = null;
      }
    },
    renderedSize() {
      const svg = surface().querySelector("svg");
      if (!svg) return null;
      const rect = svg.getBoundingClientRect();
      return [rect.width, rect.height];
    }
  };
})();
document.addEventListener("wheel", (event) => {
  if (document.querySelector(".svg-pan-zoom_viewport")) event.preventDefault();
}, { passive: false });
"""


def render_page(body_html: str = "", title: str = "mermaidpad", *, viewer: bool = False, interactive: bool = True) -> str:
    """Full HTML document around ``body_html``.

    ``interactive`` pages load svg-pan-zoom and the bridge used by the Qt
    views; static pages are plain documents for headless output.
    """
    escaped_title = html.escape(title)
    scripts = ""
    if interactive:
        scripts = (
            f"  <script src={json.dumps(panzoom_script_source())}></script>\n"
            f"  <script>{_BRIDGE_SCRIPT}</script>\n"
        )
    surface_class = "viewer" if viewer else "preview"
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>{escaped_title}</title>
  <style>
    :root {{
      color-scheme: light dark;
      --fg: #1f2937;
      --bg: #f9fafb;
      --code-bg: #e5e7eb;
      --error: #b91c1c;
    }}
    @media (prefers-color-scheme: dark) {{
      :root {{
        --fg: #e5e7eb;
        --bg: #0b1020;
        --code-bg: #1f2937;
        --error: #f87171;
      }}
    }}
    html, body {{
      margin: 0;
      height: 100%;
      background: var(--bg);
      color: var(--fg);
      font-family: system-ui, -apple-system, "Segoe UI", sans-serif;
      line-height: 1.5;
    }}
    #surface.preview {{
      padding: 16px 24px;
      box-sizing: border-box;
      min-height: 100%;
    }}
    #surface.viewer, #surface.viewer .diagram-root {{
      width: 100%;
      height: 100%;
      overflow: hidden;
    }}
    .diagram-root {{
      width: 100%;
      height: 100%;
    }}
    #surface.preview .diagram-root svg {{
      width: 100%;
      height: calc(100vh - 48px);
    }}
    pre {{
      background: var(--code-bg);
      padding: 12px;
      border-radius: 6px;
      overflow-x: auto;
    }}
    pre.plain-text {{
      white-space: pre-wrap;
    }}
    code {{
      font-family: ui-monospace, "SFMono-Regular", Menlo, monospace;
    }}
    blockquote {{
      border-left: 4px solid var(--code-bg);
      margin: 0;
      padding-left: 12px;
    }}
    .diagram-block {{
      margin: 12px 0;
    }}
    .diagram-block svg {{
      max-width: 100%;
      height: auto;
    }}
    .diagram-pending {{
      opacity: 0.6;
      font-style: italic;
    }}
    .diagram-error {{
      color: var(--error);
      border: 1px solid var(--error);
      border-radius: 6px;
      padding: 8px 12px;
    }}
  </style>
{scripts}</head>
<body>
  <div id="surface" class="{surface_class}">{body_html}</div>
</body>
</html>
"""
