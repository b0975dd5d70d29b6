from core.config import Config
from diagnostics.moses import MosesClient


def create_moses_client(config: Config) -> MosesClient:
    """Build the diagnostic query client from process configuration."""
    return MosesClient(config.diagnostics)
