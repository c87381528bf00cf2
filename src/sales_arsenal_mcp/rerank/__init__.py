from .client import RerankClient, RerankConfig, RerankError, RerankResult

__all__ = ["RerankClient", "RerankConfig", "RerankError", "RerankResult"]
