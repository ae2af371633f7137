"""HTTP server helpers: TLS setup, WSGI server running and handler hooks."""