import os

from app import create_app

app = create_app()


def main():
    # Local development only. Production runs under gunicorn (see gunicorn_config.py).
    port = int(os.environ.get('PORT', 5001))
    print("\n" + "=" * 50)
    print("Starting local development server...")
    print(f"Access the system at: http://127.0.0.1:{port}")
    print("=" * 50 + "\n")
    app.run(host='127.0.0.1', port=port, debug=app.config.get('DEBUG', False))


if __name__ == '__main__':
    main()
