"""render-relay - forwards Render failure webhooks to Discord."""
__version__ = "0.1.0"
