"""Point d'entrée du worker arq : python -m app.worker"""

from arq import run_worker

from app.worker.arq_config import WorkerSettings


def main() -> None:
    run_worker(WorkerSettings)  # type: ignore[arg-type]


if __name__ == "__main__":
    main()
