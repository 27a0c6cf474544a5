from trackey import create_app

app = create_app()
