import os

from taxihubs.config import HubsConfig
from taxihubs.util.logging import setup_logging
from taxihubs.viz.app.hubs import serve_hubs


def main():
  setup_logging(os.environ.get("LOG_LEVEL", "INFO"))

  # TRIPS_CSV, K, SAMPLE_FRAC, SEED, STREAMING, ... from the environment
  cfg = HubsConfig.from_env(make_plots=False)

  port = int(os.environ.get("PORT", "8090"))

  serve_hubs(
      cfg,
      host="0.0.0.0",
      port=port,
  )


if __name__ == "__main__":
  main()
