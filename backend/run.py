"""
Temple Donations Backend — Uvicorn Launcher

    python run.py                      # 0.0.0.0:8000
    python run.py --port 9000 --reload
    python run.py --workers 4 --log-level warning
"""
import argparse
import os

import uvicorn


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Temple donation portal API")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Interface to bind")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")), help="Port to bind")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes; ignored with --reload")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # The app logs its own boot banner at startup.
    uvicorn.run(
        "temple_donations.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1 if args.reload else args.workers,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
