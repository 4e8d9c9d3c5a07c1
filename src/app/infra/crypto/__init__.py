"""Primitivas criptográficas do serviço."""

from app.infra.crypto.opt_out_token import HmacOptOutTokenCodec

__all__ = ["HmacOptOutTokenCodec"]
