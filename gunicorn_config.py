import os

# gunicorn -c gunicorn_config.py wsgi:app

# Server socket
port = int(os.environ.get('PORT', 5000))
bind = f'0.0.0.0:{port}'

# Worker processes
workers = int(os.environ.get('WEB_CONCURRENCY', 2))
worker_class = 'sync'
threads = int(os.environ.get('GUNICORN_THREADS', 1))

# Logging
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
accesslog = '-'  # stdout
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'
errorlog = '-'  # stderr
capture_output = True

# Timeouts (PDF exports can take a while)
timeout = 120
keepalive = 5

# Uploads are capped by MAX_CONTENT_LENGTH in config.py
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

max_requests = 1000
max_requests_jitter = 50

reload = os.environ.get('FLASK_ENV') == 'development'
