"""Token snapshot <-> cache text codec.

Raw amounts (``total_supply``, holder amounts) are written as decimal
strings by the models' JSON serializers and restored as exact ints.
Anything that does not decode back into a valid snapshot is a miss.
"""

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from rugscope.models.token import Token

_token_list = TypeAdapter(list[Token])


def encode_token(token: Token) -> str:
    return token.model_dump_json()


def decode_token(raw: str | None) -> Token | None:
    if not raw:
        return None
    try:
        return Token.model_validate_json(raw)
    except ValidationError as e:
        logger.debug(f"[CACHE] undecodable token payload: {e.error_count()} errors")
        return None


def encode_tokens(tokens: list[Token]) -> str:
    return _token_list.dump_json(tokens).decode()


def decode_tokens(raw: str | None) -> list[Token] | None:
    if not raw:
        return None
    try:
        return _token_list.validate_json(raw)
    except ValidationError as e:
        logger.debug(f"[CACHE] undecodable token list payload: {e.error_count()} errors")
        return None
