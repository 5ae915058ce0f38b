from __future__ import annotations

from forecast_trainer.cli.main import main

if __name__ == "__main__":
    raise SystemExit(main())
