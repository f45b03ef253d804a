"""Realtime infrastructure (Socket.IO server and client).

The server half authenticates sockets and publishes transaction events; the
client half (``tradefair.realtime.client``) consumes them from any asyncio
program.
"""
