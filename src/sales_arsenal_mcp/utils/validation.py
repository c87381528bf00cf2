"""
Validation utilities for tool arguments.

Each validator returns None when the value is acceptable or an error message
otherwise; services turn the message into an InvalidArgumentError.
"""

from typing import Any, List, Optional, Tuple

from ..backend import is_valid_identifier


class ValidationHelper:
    """
    Helper class containing common validation logic for tool arguments.
    """

    @staticmethod
    def validate_required_string(value: Any, field: str) -> Optional[str]:
        """
        Validate that a required argument is a non-blank string.

        Args:
            value: Raw argument value
            field: Argument name used in the message

        Returns:
            Error message if invalid, None if valid
        """
        if value is None:
            return f"Campo obrigatório ausente: {field}"
        if not isinstance(value, str):
            return f"Campo {field} deve ser texto"
        if not value.strip():
            return f"Campo {field} não pode ser vazio"
        return None

    @staticmethod
    def validate_optional_string(value: Any, field: str) -> Optional[str]:
        if value is None or isinstance(value, str):
            return None
        return f"Campo {field} deve ser texto"

    @staticmethod
    def parse_limit(
        value: Any, field: str, default: int, maximum: int
    ) -> Tuple[Optional[int], Optional[str]]:
        """
        Parse a positive integer argument.

        Accepts ints, integral floats (JSON numbers) and digit strings.

        Returns:
            Tuple of (limit, error); limit is None when error is set
        """
        if value is None or value == "":
            return default, None
        if isinstance(value, bool):
            return None, f"Campo {field} deve ser um número inteiro"
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if not isinstance(value, int):
            return None, f"Campo {field} deve ser um número inteiro"
        if value < 1:
            return None, f"Campo {field} deve ser maior que zero"
        if value > maximum:
            return None, f"Campo {field} deve ser no máximo {maximum}"
        return value, None

    @staticmethod
    def validate_table_name(name: Any, field: str = "tabela") -> Optional[str]:
        error = ValidationHelper.validate_required_string(name, field)
        if error:
            return error
        if not is_valid_identifier(name.strip()):
            return f"Nome de tabela inválido: {name}"
        return None

    @staticmethod
    def parse_columns(value: Any) -> Tuple[Optional[List[str]], Optional[str]]:
        """
        Parse a column selection given as a list or a comma-separated string.

        Returns:
            Tuple of (columns, error); columns is None for "all columns"
        """
        if value is None or value == "" or value == "*":
            return None, None
        if isinstance(value, str):
            columns = [c.strip() for c in value.split(",") if c.strip()]
        elif isinstance(value, list) and all(isinstance(c, str) for c in value):
            columns = [c.strip() for c in value if c.strip()]
        else:
            return None, "Campo colunas deve ser texto ou lista de textos"

        if not columns or columns == ["*"]:
            return None, None
        invalid = [c for c in columns if not is_valid_identifier(c)]
        if invalid:
            return None, f"Nomes de coluna inválidos: {', '.join(invalid)}"
        return columns, None

    @staticmethod
    def validate_data_object(value: Any, field: str = "dados") -> Optional[str]:
        """Validate a non-empty object whose keys are valid column names."""
        if not isinstance(value, dict) or not value:
            return f"Campo {field} deve ser um objeto com ao menos uma coluna"
        invalid = [k for k in value if not is_valid_identifier(k)]
        if invalid:
            return f"Nomes de coluna inválidos em {field}: {', '.join(invalid)}"
        return None
