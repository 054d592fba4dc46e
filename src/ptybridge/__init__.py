"""ptybridge -- In-browser shell over a flow-controlled terminal bridge.

This package connects an interactive pseudo-terminal process to a remote
browser client over either a polling Socket.IO channel or a raw WebSocket.
Terminal output is acknowledged in large batches so that a slow client
can never cause unbounded buffering on the server.
"""

__version__ = "0.1.0"
