from stockseguro import create_app

app = create_app()
