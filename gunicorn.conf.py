import os
# Gunicorn config for PostPal
#
#   gunicorn -c gunicorn.conf.py "postpal.server:create_app()"

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
# Mutations share one git working tree; the lock in postpal.bp.posts only
# covers a single process.
workers = 1
worker_class = "gthread"
threads = int(os.getenv("GUNICORN_THREADS", "4"))
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))  # push can be slow
accesslog = "-"  # log to stdout
errorlog = "-"   # log to stdout
loglevel = os.getenv("GUNICORN_LOGLEVEL", "info")
proc_name = "postpal_gunicorn"

logger_class = "gunicorn.glogging.Logger"


def post_fork(server, worker):
    os.environ["GUNICORN_WORKER_ID"] = str(worker.age)
    server.log.info(f"Worker spawned (pid: {worker.pid})")

access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(L)s "%({X-Forwarded-For}i)s"'
