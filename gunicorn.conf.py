# gunicorn.conf.py
"""
Gunicorn configuration for the inventory_ops WSGI app.

WebSocket connections (/ws/receiving/) are served by Daphne from
inventory_ops.asgi:application.
"""
import multiprocessing
import os

bind = os.environ.get('GUNICORN_BIND', '0.0.0.0:8000')
backlog = 2048

workers = int(os.environ.get('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1))
worker_class = 'sync'
# Posting a receipt may call Saleor after commit (SALEOR_TIMEOUT_SECONDS per request)
timeout = 120
keepalive = 5
max_requests = 1000
max_requests_jitter = 50

preload_app = True

accesslog = '-'
errorlog = '-'
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = 'inventory-ops-gunicorn'

graceful_timeout = 30

# TLS terminates at the load balancer
forwarded_allow_ips = '*'
secure_scheme_headers = {
    'X-FORWARDED-PROTO': 'https',
}
