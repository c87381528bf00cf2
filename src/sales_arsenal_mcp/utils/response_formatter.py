"""
Response formatting utilities for the MCP server.

Produces the JSON text payloads carried inside the tool envelope.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from .. import constants

USAGE_INSTRUCTIONS = {
    "como_usar_imagens": "Se houver link_publico, SEMPRE envie com sintaxe: ![descrição](url)",
    "como_usar_texto": (
        "Use conteudo_texto para argumentos e detalhes_visuais para descrições sensoriais"
    ),
    "prioridade": "Primeiro resultado é o mais relevante",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


class ResponseFormatter:
    """
    Helper class for formatting responses consistently across services.
    """

    @staticmethod
    def to_json(payload: Any) -> str:
        """Serialize a payload; dates, decimals and UUIDs become strings/floats."""
        return json.dumps(payload, indent=2, ensure_ascii=False, default=_json_default)

    @staticmethod
    def truncate(text: Optional[str], limit: int = constants.CONTENT_PREVIEW_CHARS) -> Optional[str]:
        if text is None or len(text) <= limit:
            return text
        return text[:limit].rstrip() + "..."

    @staticmethod
    def format_relevance(item: Mapping[str, Any]) -> Optional[str]:
        """Relevance as a percentage, from the re-rank score or the vector similarity."""
        score = item.get("relevance_score")
        if score is None:
            score = item.get("similarity")
        if score is None:
            return None
        return f"{float(score) * 100:.1f}%"

    @staticmethod
    def format_arsenal_item(item: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Format an arsenal row into the fixed result block.

        Args:
            item: Arsenal row (from the match function or a plain select)

        Returns:
            Dictionary with file name, public link, category, model, truncated
            content and the descriptive fields
        """
        return {
            "nome_arquivo": item.get("nome_arquivo"),
            "link_publico": item.get("link_publico"),
            "categoria": item.get("categoria"),
            "modelo": item.get("modelo_associado"),
            "conteudo_texto": ResponseFormatter.truncate(item.get("conteudo_texto")),
            "detalhes_visuais": item.get("detalhes_visuais"),
            "descricao_semantica": item.get("descricao_semantica"),
            "emocao": item.get("emocao_predominante"),
            "momento_uso": item.get("melhor_momento_uso"),
            "relevancia": ResponseFormatter.format_relevance(item),
        }

    @staticmethod
    def arsenal_results(query: str, items: List[Mapping[str, Any]], mode: str) -> Dict[str, Any]:
        """Build the search payload; an empty `items` yields the no-results payload."""
        if not items:
            return {
                "status": "sem_resultados",
                "query": query,
                "modo": mode,
                "sugestao": "Tente termos mais amplos ou diferentes",
                "total": 0,
                "resultados": [],
            }

        resultados = [ResponseFormatter.format_arsenal_item(item) for item in items]
        return {
            "status": "sucesso",
            "query": query,
            "modo": mode,
            "total": len(resultados),
            "resultados": resultados,
            "instrucoes_ia": USAGE_INSTRUCTIONS,
        }
