from flask import Flask
from flask_cors import CORS

from havenrouting.api import routing_bp
from havenrouting.config import config


def create_app():
    app = Flask(__name__)
    CORS(app)
    app.register_blueprint(routing_bp)

    @app.route('/')
    def index():
        return "Haven routing backend is running!"

    return app


app = create_app()

if __name__ == '__main__':
    api_config = config.get_api_config()
    print(f"\n🚀 Haven routing backend running at: http://{api_config['host']}:{api_config['port']}\n")
    app.run(host=api_config['host'], port=api_config['port'], debug=api_config['debug'])
