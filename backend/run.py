import logging

from dotenv import load_dotenv
load_dotenv()

from app import create_app

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

app = create_app()

if __name__ == "__main__":
    # threaded=True lets the health check and history calls run while a long analysis is in flight
    app.run(host="0.0.0.0", port=5000, debug=True, threaded=True)
