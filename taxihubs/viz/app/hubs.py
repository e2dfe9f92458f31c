# taxihubs/viz/app/hubs.py

from __future__ import annotations

from flask import Flask, jsonify

from taxihubs.cluster.compare import RunComparison, format_comparison
from taxihubs.cluster.hubs import HubClusters, summarize_hubs
from taxihubs.config import HubsConfig
from taxihubs.pipeline import run_hub_pipeline
from taxihubs.util.logging import get_logger
from taxihubs.viz.hubs_map import build_hubs_map_html

logger = get_logger(__name__)


def create_hubs_app(
    hubs: HubClusters,
    *,
    title: str | None = None,
    comparison: RunComparison | None = None,
) -> Flask:
    """
    Flask app with:
      /               hub map, summary table and run-time line
      /centers.json   centroid table as JSON records
    """
    if title is None:
        title = f"Trip Hubs (k={hubs.k})"

    summary_df = summarize_hubs(hubs)
    app = Flask(__name__)

    @app.get("/")
    def index():
        html_map = build_hubs_map_html(hubs, title=title)
        summary_html = summary_df.to_html(index=False, float_format=lambda x: f"{x:.4f}")
        timing_html = f"<p>{format_comparison(comparison)}</p>" if comparison is not None else ""

        return f"""
        <html>
          <head>
            <meta charset="utf-8"/>
            <meta name="viewport" content="width=device-width, initial-scale=1"/>
            <title>{title}</title>
          </head>
          <body style="margin:0; padding:0;">
            {html_map}
            <div style="padding: 14px 16px; font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial;">
              <h2 style="margin: 8px 0;">Hub Summary</h2>
              {timing_html}
              {summary_html}
            </div>
          </body>
        </html>
        """

    @app.get("/centers.json")
    def centers():
        return jsonify(hubs.centers_df.to_dict(orient="records"))

    return app


def serve_hubs(
    cfg: HubsConfig,
    host: str = "127.0.0.1",
    port: int = 8090,
    debug: bool = False,
    title: str | None = None,
):
    """
    Library entry point: run the pipeline, then serve the resulting hub map.
    """
    result = run_hub_pipeline(cfg)
    if title is None:
        title = f"Trip Hubs (k={cfg.k}) - {cfg.trips_csv}"

    app = create_hubs_app(result.full_hubs, title=title, comparison=result.comparison)
    logger.info(f"Serving hub map on http://{host}:{port}/")
    app.run(host=host, port=int(port), debug=debug)
