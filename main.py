import os

from app import create_app

CONFIGS = {
    'development': 'config.DevelopmentConfig',
    'testing': 'config.TestingConfig',
    'production': 'config.ProductionConfig',
}

app = create_app(CONFIGS.get(os.environ.get('FLASK_ENV', 'development'), 'config.DevelopmentConfig'))

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
