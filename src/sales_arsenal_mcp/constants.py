"""
Shared constants for the Sales Arsenal MCP server.
"""

SERVER_NAME = "sales-arsenal-mcp"
PROTOCOL_VERSION = "2024-11-05"

# Database objects
ARSENAL_TABLE = "arsenal_vendas"
ARSENAL_MATCH_FUNCTION = "match_arsenal_vendas"
LEADS_TABLE = "leads"
LEAD_NATURAL_KEY = "telefone"
ROW_ID_COLUMN = "id"
EMBEDDING_COLUMN = "embedding"

# Columns OR'd together by the keyword fallback
KEYWORD_SEARCH_COLUMNS = [
    "nome_arquivo",
    "conteudo_texto",
    "descricao_semantica",
]

# Columns concatenated into the text that gets embedded / re-ranked
ARSENAL_DOCUMENT_COLUMNS = [
    "nome_arquivo",
    "categoria",
    "modelo_associado",
    "conteudo_texto",
    "detalhes_visuais",
    "descricao_semantica",
    "emocao_predominante",
    "melhor_momento_uso",
]

# Search tuning defaults
DEFAULT_SEARCH_LIMIT = 5
MAX_SEARCH_LIMIT = 50
DEFAULT_MATCH_THRESHOLD = 0.3
DEFAULT_OVERFETCH_FACTOR = 5
CONTENT_PREVIEW_CHARS = 500

# Generic table access
DEFAULT_READ_LIMIT = 10
MAX_READ_LIMIT = 1000
WRITE_ACTIONS = ("insert", "update", "delete")

# Signed download links
SIGNED_URL_TTL_SECONDS = 3600

# Upstream calls
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 20.0
DB_CONNECT_TIMEOUT_SECONDS = 10

# Rerank provider (Jina-compatible API)
DEFAULT_RERANK_URL = "https://api.jina.ai/v1/rerank"
DEFAULT_RERANK_MODEL = "jina-reranker-v2-base-multilingual"

# HTTP transport
DEFAULT_PORT = 3000
DEFAULT_SESSION_TTL_SECONDS = 3600
SESSION_HEADER = "Mcp-Session-Id"

# Tools also reachable as plain `POST /<tool>` JSON endpoints
REST_TOOLS = ("buscar_arsenal", "buscar_lead", "atualizar_lead")
