"""
Tool declarations for the Sales Arsenal MCP server.

Handlers are thin: unpack arguments, delegate to a service, wrap the result.
Descriptions are in Portuguese because the calling agents operate in Portuguese.
"""

from typing import Any, Dict

from ..services import ArsenalSearchService, LeadService, StorageService, TableService
from ..utils import BridgeContext
from .registry import ToolRegistry, ToolResult

BUSCAR_ARSENAL_SCHEMA = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": "O que buscar (ex: 'mesa de jantar rústica', 'argumento de durabilidade')",
        },
        "busca": {"type": "string", "description": "Alias de query"},
        "limit": {
            "type": "integer",
            "description": "Número de resultados (padrão: 5)",
            "default": 5,
            "minimum": 1,
            "maximum": 50,
        },
        "category": {"type": "string", "description": "Filtra por categoria (opcional)"},
    },
    "anyOf": [{"required": ["query"]}, {"required": ["busca"]}],
}

TELEFONE_PROPERTY = {"type": "string", "description": "Telefone do lead (chave natural)"}

BUSCAR_LEAD_SCHEMA = {
    "type": "object",
    "properties": {"telefone": TELEFONE_PROPERTY},
    "required": ["telefone"],
}

ATUALIZAR_LEAD_SCHEMA = {
    "type": "object",
    "properties": {
        "telefone": TELEFONE_PROPERTY,
        "funnel_stage": {"type": "string", "description": "Etapa do funil de vendas"},
        "perfil_completo_ia": {
            "type": "object",
            "description": "Perfil do lead consolidado pela IA",
        },
    },
    "required": ["telefone"],
}

SALVAR_LEAD_SCHEMA = {
    "type": "object",
    "properties": {
        "telefone": TELEFONE_PROPERTY,
        "nome": {"type": "string", "description": "Nome do lead"},
        "interesse": {"type": "string", "description": "Interesse principal"},
        "stage": {"type": "string", "description": "Etapa do funil de vendas"},
    },
    "required": ["telefone"],
}

LER_TABELA_SCHEMA = {
    "type": "object",
    "properties": {
        "tabela": {"type": "string", "description": "Nome da tabela"},
        "colunas": {
            "description": "Colunas a retornar (lista ou texto separado por vírgulas, padrão: todas)",
            "anyOf": [{"type": "string"}, {"type": "array", "items": {"type": "string"}}],
        },
        "limite": {
            "type": "integer",
            "description": "Máximo de linhas (padrão: 10)",
            "default": 10,
            "minimum": 1,
            "maximum": 1000,
        },
    },
    "required": ["tabela"],
}

MODIFICAR_DADOS_SCHEMA = {
    "type": "object",
    "properties": {
        "acao": {"type": "string", "enum": ["insert", "update", "delete"]},
        "tabela": {"type": "string", "description": "Nome da tabela"},
        "dados": {"type": "object", "description": "Colunas e valores (insert/update)"},
        "id_alvo": {
            "type": ["string", "integer"],
            "description": "Valor da coluna id do registro alvo (update/delete)",
        },
    },
    "required": ["acao", "tabela"],
}

GERAR_LINK_SCHEMA = {
    "type": "object",
    "properties": {
        "bucket": {"type": "string", "description": "Bucket de armazenamento"},
        "caminho": {"type": "string", "description": "Caminho do arquivo dentro do bucket"},
    },
    "required": ["bucket", "caminho"],
}

LISTAR_TABELAS_SCHEMA: Dict[str, Any] = {"type": "object", "properties": {}}


def build_tool_registry(context: BridgeContext) -> ToolRegistry:
    """
    Build the registry with every tool bound to the given context.

    Args:
        context: Settings and clients shared by the handlers

    Returns:
        ToolRegistry listing tools in a stable order
    """
    registry = ToolRegistry()
    search = ArsenalSearchService(context)
    leads = LeadService(context)
    tables = TableService(context)
    storage = StorageService(context)

    @registry.tool(
        "buscar_arsenal",
        "Busca semântica no arsenal de vendas (imagens, argumentos, roteiros). "
        "Use para encontrar o material mais relevante para a conversa com o cliente.",
        BUSCAR_ARSENAL_SCHEMA,
    )
    async def buscar_arsenal(args: Dict[str, Any]) -> ToolResult:
        query = args.get("query")
        if query is None or (isinstance(query, str) and not query.strip()):
            query = args.get("busca", query)
        payload = await search.search(query, args.get("limit"), args.get("category"))
        return ToolResult.from_json(payload)

    @registry.tool("buscar_lead", "Busca um lead pelo telefone.", BUSCAR_LEAD_SCHEMA)
    async def buscar_lead(args: Dict[str, Any]) -> ToolResult:
        return ToolResult.from_json(await leads.find_lead(args.get("telefone")))

    @registry.tool(
        "atualizar_lead",
        "Atualiza etapa do funil e perfil do lead (cria se não existir).",
        ATUALIZAR_LEAD_SCHEMA,
    )
    async def atualizar_lead(args: Dict[str, Any]) -> ToolResult:
        payload = await leads.update_lead(
            args.get("telefone"), args.get("funnel_stage"), args.get("perfil_completo_ia")
        )
        return ToolResult.from_json(payload)

    @registry.tool(
        "salvar_lead",
        "Salva nome, interesse e etapa do lead (cria se não existir).",
        SALVAR_LEAD_SCHEMA,
    )
    async def salvar_lead(args: Dict[str, Any]) -> ToolResult:
        payload = await leads.save_lead(
            args.get("telefone"), args.get("nome"), args.get("interesse"), args.get("stage")
        )
        return ToolResult.from_json(payload)

    @registry.tool("ler_tabela", "Lê registros de uma tabela.", LER_TABELA_SCHEMA)
    async def ler_tabela(args: Dict[str, Any]) -> ToolResult:
        rows = await tables.read_table(args.get("tabela"), args.get("colunas"), args.get("limite"))
        return ToolResult.from_json(rows)

    @registry.tool(
        "modificar_dados",
        "Insere, atualiza ou remove registros de uma tabela. "
        "update e delete exigem id_alvo.",
        MODIFICAR_DADOS_SCHEMA,
    )
    async def modificar_dados(args: Dict[str, Any]) -> ToolResult:
        payload = await tables.modify_data(
            args.get("acao"), args.get("tabela"), args.get("dados"), args.get("id_alvo")
        )
        return ToolResult.from_json(payload)

    @registry.tool(
        "gerar_link_download",
        "Gera um link de download temporário (1 hora) para um arquivo.",
        GERAR_LINK_SCHEMA,
    )
    async def gerar_link_download(args: Dict[str, Any]) -> ToolResult:
        link = await storage.create_download_link(args.get("bucket"), args.get("caminho"))
        return ToolResult.from_json(link)

    @registry.tool("listar_tabelas", "Lista as tabelas disponíveis.", LISTAR_TABELAS_SCHEMA)
    async def listar_tabelas(args: Dict[str, Any]) -> ToolResult:
        return ToolResult.from_json(await tables.list_tables())

    return registry
