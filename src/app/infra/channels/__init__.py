"""Transportes de entrega por canal."""

from app.infra.channels.logging_sender import LoggingChannelSender

__all__ = ["LoggingChannelSender"]
