"""Runtime image build file (php/Dockerfile)."""

from typing import List

RUNTIME_DOCKERFILE = "php/Dockerfile"
BASE_IMAGE = "php:8.3-fpm-alpine"

BUILD_PACKAGES = ["bash", "curl", "unzip", "git", "libzip-dev", "oniguruma-dev"]
EXTENSIONS = ["pdo", "pdo_mysql", "mysqli", "zip", "mbstring", "opcache"]
RUNTIME_DIRECTORIES = ["/var/www/html", "/var/log/php", "/var/run/php", "/tmp/php/sessions"]


def _continued(command: str, items: List[str]) -> str:
    return " \\\n    ".join([command, *items])


def runtime_dockerfile() -> str:
    """Build file for the PHP-FPM image.

    Tuning comes from the mounted zz-provisioned files, so the image carries
    extensions only.
    """
    lines = [
        f"FROM {BASE_IMAGE}",
        "",
        "RUN " + _continued("apk add --no-cache", BUILD_PACKAGES),
        "",
        "RUN " + _continued("docker-php-ext-install -j$(nproc)", EXTENSIONS)
        + " \\\n    && docker-php-source delete",
        "",
        "COPY --from=composer:latest /usr/bin/composer /usr/bin/composer",
        "",
        "RUN " + _continued("mkdir -p", RUNTIME_DIRECTORIES),
        "",
        "WORKDIR /var/www/html",
        "",
        "EXPOSE 9000",
        "",
        'CMD ["php-fpm"]',
    ]
    return "\n".join(lines) + "\n"
