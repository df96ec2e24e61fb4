# Entry point for `flask --app wsgi <command>` and WSGI servers.

from hisobchi import create_app

app = create_app()
