import subprocess
import sys
from pathlib import Path

import typer
import uvicorn

app = typer.Typer(help="TrustEngine CLI")


def _alembic() -> str:
    # Use the alembic executable from the virtual environment
    return str(Path(sys.executable).parent / "alembic")


@app.command()
def run(
    host: str = "0.0.0.0",
    port: int = 8000,
    reload: bool = False,
) -> None:
    """
    Run the FastAPI server
    """
    uvicorn.run(
        "trust_engine.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def migrate(revision: str = "head") -> None:
    """
    Run Alembic migrations
    """
    result = subprocess.run([_alembic(), "upgrade", revision])
    raise typer.Exit(result.returncode)


@app.command()
def makemigration(message: str) -> None:
    """
    Create a new migration
    """
    result = subprocess.run([_alembic(), "revision", "--autogenerate", "-m", message])
    raise typer.Exit(result.returncode)


if __name__ == "__main__":
    app()
