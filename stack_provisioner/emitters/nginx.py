"""Reverse proxy (nginx) configuration builders.

Configuration is assembled as a tree of :class:`Directive` and
:class:`Block` nodes and serialized once by :func:`render`, which quotes
any argument nginx would otherwise split or misparse.
"""

import re
from dataclasses import dataclass, field
from typing import List, Sequence, Union

from ..models.data_models import TierProfile
from .common import format_size

APP_ROOT = "/var/www/html"
ACME_WEBROOT = "/var/www/certbot"
ACME_PATH = "/.well-known/acme-challenge/"
RUNTIME_UPSTREAM = "php:9000"
STATIC_EXTENSIONS = "jpg|jpeg|png|gif|ico|css|js|pdf|txt|woff|woff2|svg|ttf|eot"

_BARE_ARG = re.compile(r"^[^\s;{}\"'#]+$")


@dataclass
class Directive:
    """A simple ``name args;`` statement."""
    name: str
    args: Sequence[Union[str, int]] = ()


@dataclass
class Block:
    """A ``name args { ... }`` context."""
    name: str
    args: Sequence[Union[str, int]] = ()
    children: List["Node"] = field(default_factory=list)


Node = Union[Directive, Block]


def quote(arg: Union[str, int]) -> str:
    """Quote an argument unless it is a safe bare word."""
    text = str(arg)
    if _BARE_ARG.match(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _statement(name: str, args: Sequence[Union[str, int]]) -> str:
    return " ".join([name, *(quote(a) for a in args)])


def render(nodes: Sequence[Node], indent: int = 0) -> str:
    """Serialize a directive tree to nginx syntax."""
    pad = "    " * indent
    lines = []

    for node in nodes:
        if isinstance(node, Block):
            lines.append(f"{pad}{_statement(node.name, node.args)} {{")
            body = render(node.children, indent + 1)
            if body:
                lines.append(body.rstrip("\n"))
            lines.append(f"{pad}}}")
            if indent == 0:
                lines.append("")
        else:
            lines.append(f"{pad}{_statement(node.name, node.args)};")

    return "\n".join(lines) + "\n"


def main_config(profile: TierProfile) -> List[Node]:
    """Build the main nginx.conf tree for a resolved tier profile."""
    log_format = (
        '$remote_addr - $remote_user [$time_local] "$request" '
        '$status $body_bytes_sent "$http_referer" '
        '"$http_user_agent" "$http_x_forwarded_for"'
    )

    return [
        Directive("user", ["nginx"]),
        Directive("worker_processes", [profile.worker_process_count]),
        Directive("worker_cpu_affinity", ["auto"]),
        Directive("error_log", ["/var/log/nginx/error.log", "notice"]),
        Directive("pid", ["/var/run/nginx.pid"]),
        Block("events", children=[
            Directive("worker_connections", [profile.worker_connections]),
            Directive("use", ["epoll"]),
            Directive("multi_accept", ["on"]),
        ]),
        Block("http", children=[
            Directive("include", ["/etc/nginx/mime.types"]),
            Directive("default_type", ["application/octet-stream"]),
            Directive("log_format", ["main", log_format]),
            Directive("access_log", ["/var/log/nginx/access.log", "main"]),
            Directive("sendfile", ["on"]),
            Directive("tcp_nopush", ["on"]),
            Directive("tcp_nodelay", ["on"]),
            Directive("keepalive_timeout", [65]),
            Directive("keepalive_requests", [1000]),
            Directive("types_hash_max_size", [2048]),
            Directive("server_tokens", ["off"]),
            Directive("gzip", ["on"]),
            Directive("gzip_vary", ["on"]),
            Directive("gzip_min_length", [1024]),
            Directive("gzip_proxied", ["any"]),
            Directive("gzip_comp_level", [6]),
            Directive("gzip_types", [
                "text/plain", "text/css", "text/xml", "text/javascript",
                "application/json", "application/javascript", "application/xml+rss",
                "application/atom+xml", "image/svg+xml",
            ]),
            Directive("client_body_buffer_size", ["128k"]),
            Directive("client_max_body_size", [format_size(profile.max_upload_size_bytes)]),
            Directive("client_header_buffer_size", ["1k"]),
            Directive("large_client_header_buffers", [4, "4k"]),
            Directive("add_header", ["X-Frame-Options", "SAMEORIGIN", "always"]),
            Directive("add_header", ["X-XSS-Protection", "1; mode=block", "always"]),
            Directive("add_header", ["X-Content-Type-Options", "nosniff", "always"]),
            Directive("include", ["/etc/nginx/conf.d/*.conf"]),
        ]),
    ]


def _acme_location() -> Block:
    # ^~ keeps the dotfile deny rule below from shadowing the challenge path
    return Block("location", ["^~", ACME_PATH], [
        Directive("root", [ACME_WEBROOT]),
        Directive("try_files", ["$uri", "=404"]),
    ])


def _application_locations() -> List[Node]:
    return [
        Directive("root", [APP_ROOT]),
        Directive("index", ["index.php", "index.html", "index.htm"]),
        Block("location", ["~*", rf"\.({STATIC_EXTENSIONS})$"], [
            Directive("expires", ["1y"]),
            Directive("add_header", ["Cache-Control", "public, immutable"]),
            Directive("access_log", ["off"]),
        ]),
        Block("location", ["/"], [
            Directive("try_files", ["$uri", "$uri/", "/index.php?$query_string"]),
        ]),
        Block("location", ["~", r"\.php$"], [
            Directive("try_files", ["$uri", "=404"]),
            Directive("fastcgi_pass", [RUNTIME_UPSTREAM]),
            Directive("include", ["fastcgi_params"]),
            Directive("fastcgi_index", ["index.php"]),
            Directive("fastcgi_param", ["SCRIPT_FILENAME", "$document_root$fastcgi_script_name"]),
            Directive("fastcgi_buffer_size", ["128k"]),
            Directive("fastcgi_buffers", [4, "256k"]),
            Directive("fastcgi_busy_buffers_size", ["256k"]),
        ]),
        Block("location", ["~", r"/\."], [
            Directive("deny", ["all"]),
            Directive("access_log", ["off"]),
        ]),
    ]


def site_config(domain: str, tls: bool = False) -> List[Node]:
    """Build the virtual host tree.

    Without TLS one plain HTTP server serves the application. With TLS the
    HTTP server only answers ACME challenges and redirects everything else
    to HTTPS, and a second server terminates TLS.
    """
    if not tls:
        return [
            Block("server", children=[
                Directive("listen", [80]),
                Directive("server_name", [domain]),
                _acme_location(),
                *_application_locations(),
            ]),
        ]

    live = f"/etc/letsencrypt/live/{domain}"
    return [
        Block("server", children=[
            Directive("listen", [80]),
            Directive("server_name", [domain]),
            _acme_location(),
            Block("location", ["/"], [
                Directive("return", [301, "https://$host$request_uri"]),
            ]),
        ]),
        Block("server", children=[
            Directive("listen", [443, "ssl"]),
            Directive("http2", ["on"]),
            Directive("server_name", [domain]),
            Directive("ssl_certificate", [f"{live}/fullchain.pem"]),
            Directive("ssl_certificate_key", [f"{live}/privkey.pem"]),
            Directive("ssl_protocols", ["TLSv1.2", "TLSv1.3"]),
            Directive("ssl_ciphers", [
                "ECDHE-RSA-AES256-GCM-SHA512:DHE-RSA-AES256-GCM-SHA512:ECDHE-RSA-AES256-GCM-SHA384"
            ]),
            Directive("ssl_prefer_server_ciphers", ["off"]),
            Directive("ssl_session_cache", ["shared:SSL:10m"]),
            Directive("ssl_session_timeout", ["1d"]),
            Directive("ssl_session_tickets", ["off"]),
            Directive("ssl_buffer_size", ["4k"]),
            *_application_locations(),
        ]),
    ]
