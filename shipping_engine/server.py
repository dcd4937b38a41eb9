"""Run the API with uvicorn. Port comes from $PORT (default 8000)."""
import os

import uvicorn


def _read_port() -> int:
    value = os.environ.get("PORT", "8000")
    try:
        return int(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid PORT '{value}': {exc}") from exc


def main() -> None:
    uvicorn.run("shipping_engine.main:app", host="0.0.0.0", port=_read_port())


if __name__ == "__main__":
    main()
