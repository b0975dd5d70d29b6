from diagnostics.moses import MosesClient
from llm.tools import CHECK_MOSES_LOGS
from tools.diagnostic import DiagnosticTools
from tools.executor import ToolExecutor


def register_all_tools(executor: ToolExecutor, client: MosesClient) -> None:
    diagnostic = DiagnosticTools(client)
    executor.register(CHECK_MOSES_LOGS, diagnostic.check_moses_logs)
