from avdlatency.monitor.service import main

if __name__ == "__main__":
    # Runs the scrape-and-persist loop until SIGINT/SIGTERM. The status API is
    # served separately by ``python -m avdlatency.main``.
    raise SystemExit(main())
