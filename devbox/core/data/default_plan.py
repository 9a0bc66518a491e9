"""
Default workstation plan — a Debian 12 / openSUSE Tumbleweed dev box.

Same shape as a plan YAML file: ``variables`` and ``steps``. String
values use ``{var}`` placeholders, rendered by the plan loader with
the detected distribution (``codename``, ``arch``, ...) plus these
variables and any user overrides.

Every step is non-fatal: one missing optional package should not stop
the remaining steps.
"""

from __future__ import annotations

from typing import Any

APT = ["apt"]
ZYPPER = ["zypper"]

COMPOSER_INSTRUCTIONS = """\
# Installing Composer (PHP Dependency Manager)

Composer was not installed automatically to avoid network timeout issues.
Run the following commands manually when ready:

## Step 1 -- Download the installer
    curl -fsSL https://getcomposer.org/installer -o /tmp/composer-setup.php

## Step 2 -- Verify the checksum (recommended)
    EXPECTED=$(curl -fsSL https://composer.github.io/installer.sig)
    ACTUAL=$(php -r "echo hash_file('sha384', '/tmp/composer-setup.php');")
    echo "Expected : $EXPECTED"
    echo "Actual   : $ACTUAL"
    # The two values above must match before proceeding

## Step 3 -- Install Composer globally
    sudo php /tmp/composer-setup.php --install-dir=/usr/local/bin --filename=composer --2
    rm /tmp/composer-setup.php

## Step 4 -- Verify installation
    composer --version

## Step 5 -- Keep Composer updated
    sudo composer self-update

## Official documentation
    https://getcomposer.org/doc/
"""

LIBCURL_PIN: dict[str, Any] = {
    "id": "pin-libcurl",
    "package_patterns": [
        "libcurl4", "libcurl4-openssl-dev", "libcurl4-gnutls-dev", "libcurl3-gnutls", "curl",
    ],
    "release_tag": "{codename}",
    "priority": 1001,
}

NPM_GLOBALS = [
    "npm@latest", "yarn", "pnpm", "typescript", "ts-node", "tsx", "nodemon", "pm2",
    "eslint", "prettier", "@biomejs/biome", "jest", "dotenv-cli", "http-server",
    "wscat", "node-gyp", "npm-check-updates",
]

PHP_EXTENSIONS = [
    "cli", "fpm", "common", "mysql", "pgsql", "sqlite3", "mbstring", "xml", "xmlrpc",
    "soap", "curl", "zip", "gd", "intl", "bcmath", "opcache", "redis", "memcached",
    "xdebug", "dev", "odbc", "ldap",
]


DEFAULT_PLAN: dict[str, Any] = {
    "variables": {
        "node_major": "22",
        "php_version": "8.3",
    },
    "steps": [
        {
            "name": "fix-dependencies",
            "description": "Repair interrupted installs, held packages and conflicting sources",
            "actions": [
                {"kind": "repair"},
                {"kind": "unhold_held", "backends": APT},
                {
                    "kind": "pin",
                    "label": "preventive libcurl pin",
                    "backends": APT,
                    "pin": LIBCURL_PIN,
                },
                {
                    "kind": "install",
                    "label": "downgrade foreign libcurl",
                    "backends": APT,
                    "optional": True,
                    "packages": ["libcurl4=7.88.1*", "curl=7.88.1*"],
                    "allow_downgrade": True,
                    "only_if_foreign": ["libcurl4", "curl"],
                },
                {"kind": "pin_foreign", "backends": APT, "release_tag": "{codename}"},
                {"kind": "deduplicate", "backends": APT},
                {"kind": "refresh"},
            ],
        },
        {
            "name": "system-update",
            "description": "Refresh indexes and upgrade the system",
            "actions": [
                {"kind": "refresh", "backends": APT},
                {"kind": "upgrade"},
            ],
        },
        {
            "name": "enable-i386",
            "description": "32-bit architecture support",
            "actions": [
                {"kind": "add_architecture", "backends": APT, "architecture": "i386"},
                {
                    "kind": "install",
                    "backends": ZYPPER,
                    "packages": ["glibc-32bit", "glibc-devel-32bit", "libstdc++6-32bit"],
                },
            ],
        },
        {
            "name": "build-essential",
            "description": "Compiler toolchain",
            "actions": [
                {"kind": "install", "backends": APT, "packages": ["build-essential"]},
                {
                    "kind": "command",
                    "label": "devel_basis pattern",
                    "backends": ZYPPER,
                    "argv": ["zypper", "--non-interactive", "install", "-y", "-t", "pattern", "devel_basis"],
                },
                {
                    "kind": "install",
                    "backends": ZYPPER,
                    "packages": ["gcc", "gcc-c++", "make", "binutils", "glibc-devel"],
                },
            ],
        },
        {
            "name": "developer-tools",
            "description": "Build systems, debuggers, VCS and analysis tools",
            "actions": [
                {
                    "kind": "install",
                    "backends": APT,
                    "packages": [
                        "cmake", "ninja-build", "pkg-config", "git", "git-lfs", "git-flow",
                        "curl", "wget", "gdb", "lldb", "valgrind", "strace", "ltrace",
                        "clang", "clang-format", "clang-tidy", "clang-tools", "lld",
                        "bison", "flex", "autoconf", "automake", "libtool", "m4",
                        "gettext", "meson", "ccache", "patchelf", "elfutils", "binutils-dev",
                    ],
                },
                {
                    "kind": "install",
                    "backends": ZYPPER,
                    "packages": [
                        "cmake", "ninja", "pkg-config", "git", "git-lfs", "gitflow",
                        "curl", "wget", "gdb", "lldb", "valgrind", "strace", "ltrace",
                        "clang", "clang-tools", "lld", "bison", "flex", "autoconf",
                        "automake", "libtool", "m4", "gettext-tools", "meson", "ccache",
                        "patchelf", "elfutils", "binutils-devel",
                    ],
                },
            ],
        },
        {
            "name": "containers",
            "description": "Docker CE, Podman and container tools",
            "actions": [
                {"kind": "install", "backends": APT, "packages": ["ca-certificates", "gnupg"]},
                {
                    "kind": "repo_add",
                    "backends": APT,
                    "source": {
                        "id": "docker",
                        "entry_line": (
                            "deb [arch={arch} signed-by=/etc/apt/keyrings/docker.gpg] "
                            "https://download.docker.com/linux/debian {codename} stable"
                        ),
                        "signing_key": {
                            "url": "https://download.docker.com/linux/debian/gpg",
                            "keyring": "/etc/apt/keyrings/docker.gpg",
                        },
                    },
                },
                {
                    "kind": "install",
                    "backends": APT,
                    "packages": [
                        "docker-ce", "docker-ce-cli", "containerd.io", "docker-buildx-plugin",
                        "docker-compose-plugin", "podman", "buildah", "skopeo",
                    ],
                },
                {
                    "kind": "install",
                    "backends": ZYPPER,
                    "packages": ["docker", "docker-compose", "podman", "buildah", "skopeo"],
                },
                {"kind": "service_enable", "service": "docker"},
            ],
        },
        {
            "name": "nodejs",
            "description": "Node.js {node_major}.x LTS and global npm tools",
            "actions": [
                {
                    "kind": "repo_add",
                    "backends": APT,
                    "source": {
                        "id": "nodesource",
                        "entry_line": (
                            "deb [signed-by=/etc/apt/keyrings/nodesource.gpg] "
                            "https://deb.nodesource.com/node_{node_major}.x nodistro main"
                        ),
                        "signing_key": {
                            "url": "https://deb.nodesource.com/gpgkey/nodesource-repo.gpg.key",
                            "keyring": "/etc/apt/keyrings/nodesource.gpg",
                        },
                    },
                },
                {"kind": "install", "backends": APT, "packages": ["nodejs"]},
                {"kind": "install", "backends": ZYPPER, "packages": ["nodejs", "npm"]},
                {
                    "kind": "command",
                    "label": "global npm packages",
                    "optional": True,
                    "argv": ["npm", "install", "-g", *NPM_GLOBALS],
                },
            ],
        },
        {
            "name": "php",
            "description": "PHP {php_version} with extensions; Composer left for manual install",
            "actions": [
                {
                    "kind": "repo_add",
                    "backends": APT,
                    "source": {
                        "id": "php-sury",
                        "entry_line": "deb https://packages.sury.org/php/ {codename} main",
                        "signing_key": {
                            "url": "https://packages.sury.org/php/apt.gpg",
                            "keyring": "/etc/apt/trusted.gpg.d/php-sury.gpg",
                            "dearmor": False,
                        },
                    },
                },
                {
                    "kind": "install",
                    "backends": APT,
                    "packages": [
                        "php{php_version}",
                        *(f"php{{php_version}}-{ext}" for ext in PHP_EXTENSIONS),
                        "php-pear",
                    ],
                },
                {
                    "kind": "install",
                    "backends": ZYPPER,
                    "packages": [
                        "php8", "php8-cli", "php8-fpm", "php8-mysql", "php8-pgsql",
                        "php8-sqlite", "php8-mbstring", "php8-xml", "php8-curl",
                        "php8-zip", "php8-gd", "php8-intl", "php8-bcmath", "php8-opcache",
                        "php8-devel", "php8-pear",
                    ],
                },
                {
                    "kind": "command",
                    "label": "disable PEAR auto-discover",
                    "backends": APT,
                    "optional": True,
                    "argv": ["pear", "config-set", "auto_discover", "0"],
                    "timeout": 30,
                },
                {
                    "kind": "service_enable",
                    "backends": APT,
                    "optional": True,
                    "service": "php{php_version}-fpm",
                },
                {
                    "kind": "file_write",
                    "label": "Composer install instructions",
                    "path": "{instructions_dir}/COMPOSER_INSTALL.md",
                    "content": COMPOSER_INSTRUCTIONS,
                },
            ],
        },
        {
            "name": "non-free",
            "description": "Enable the non-free component and install SNMP MIBs",
            "actions": [
                {"kind": "enable_component", "backends": APT, "component": "non-free"},
                {"kind": "refresh", "backends": APT},
                {"kind": "install", "backends": APT, "packages": ["snmp-mibs-downloader"]},
            ],
        },
        {
            "name": "remote-tools",
            "description": "OpenSSH server and rsync",
            "actions": [
                {"kind": "install", "backends": APT, "packages": ["openssh-server", "rsync"]},
                {"kind": "service_enable", "backends": APT, "service": "ssh"},
                {"kind": "install", "backends": ZYPPER, "packages": ["openssh", "rsync"]},
                {"kind": "service_enable", "backends": ZYPPER, "service": "sshd"},
            ],
        },
    ],
}
