"""Network endpoint module for ptybridge.

Accepts browser connections over Socket.IO (polling only) and raw
WebSockets, and starts one terminal session for each of them.
"""
