"""Service catalog for the homelab stack.

Everything here is data: images, ports, mounts, directory layout and the
package lists installed on the host. The manifest, firewall rules, dashboard
and scrape configuration are all derived from default_services() so they cannot
drift apart.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

NETWORK_NAME = "homelab"
SSH_FIREWALL_RULE = "OpenSSH"
HOST_GATEWAY = "host.docker.internal"

BASE_PACKAGES = [
    "curl", "ca-certificates", "gnupg", "lsb-release", "jq", "unzip", "ufw", "htop", "git",
]

DOCKER_PACKAGES = [
    "docker-ce", "docker-ce-cli", "containerd.io", "docker-buildx-plugin", "docker-compose-plugin",
]

# Relative to the install root
DIRECTORIES = [
    "dashy",
    "jellyfin/config",
    "jellyfin/cache",
    "jellyfin/media",
    "nextcloud/app",
    "nextcloud/data",
    "nextcloud/db",
    "uptime-kuma",
    "data/netdata",
    "monitoring/prometheus",
    "monitoring/grafana",
    "monitoring/exporters",
    "wireguard",
    "portainer",
    "wazuh",
]


@dataclass(frozen=True)
class PortMapping:
    """A published port: host side -> container side."""
    host: int
    container: int

    def __str__(self) -> str:
        return f"{self.host}:{self.container}"


@dataclass(frozen=True)
class ServiceSpec:
    """One service entry of the orchestration manifest."""
    name: str
    image: str
    container_name: Optional[str] = None
    ports: List[PortMapping] = field(default_factory=list)
    host_ports: List[int] = field(default_factory=list)  # for network_mode: host
    environment: Dict[str, str] = field(default_factory=dict)
    volumes: List[str] = field(default_factory=list)
    network_mode: Optional[str] = None
    pid: Optional[str] = None
    command: Optional[str] = None
    depends_on: List[str] = field(default_factory=list)
    devices: List[str] = field(default_factory=list)
    cap_add: List[str] = field(default_factory=list)
    security_opt: List[str] = field(default_factory=list)
    extra_hosts: List[str] = field(default_factory=list)
    restart: str = "unless-stopped"
    dashboard_title: Optional[str] = None
    dashboard_scheme: str = "http"
    scrape_port: Optional[int] = None  # container port Prometheus scrapes

    @property
    def host_networked(self) -> bool:
        return self.network_mode == "host"

    @property
    def exposed_ports(self) -> List[int]:
        """Ports reachable on the host for this service."""
        if self.host_networked:
            return list(self.host_ports)
        return [p.host for p in self.ports]

    @property
    def dashboard_port(self) -> Optional[int]:
        ports = self.exposed_ports
        return ports[0] if ports else None


def default_services(puid: int = 1000, pgid: int = 1000) -> List[ServiceSpec]:
    """Build the stack's service list."""
    return [
        ServiceSpec(
            name="dashy",
            image="lissy93/dashy:latest",
            ports=[PortMapping(8080, 8080)],
            volumes=["./dashy/conf.yml:/app/public/conf.yml"],
            environment={"NODE_ENV": "production"},
            dashboard_title="Dashy",
        ),
        ServiceSpec(
            name="jellyfin",
            image="lscr.io/linuxserver/jellyfin:latest",
            environment={"PUID": str(puid), "PGID": str(pgid), "TZ": "${TZ}"},
            volumes=[
                "./jellyfin/config:/config",
                "./jellyfin/cache:/cache",
                "./jellyfin/media:/media",
            ],
            ports=[PortMapping(8096, 8096)],
            devices=["/dev/dri:/dev/dri"],
            dashboard_title="Jellyfin",
        ),
        ServiceSpec(
            name="mariadb",
            image="mariadb:11",
            container_name="nextcloud-db",
            command=(
                "--transaction-isolation=READ-COMMITTED "
                "--innodb-read-only-compressed=OFF --innodb_buffer_pool_size=512M"
            ),
            environment={
                "MYSQL_ROOT_PASSWORD": "${MYSQL_ROOT_PASSWORD}",
                "MYSQL_DATABASE": "${MYSQL_DATABASE}",
                "MYSQL_USER": "${MYSQL_USER}",
                "MYSQL_PASSWORD": "${MYSQL_PASSWORD}",
            },
            volumes=["./nextcloud/db:/var/lib/mysql"],
        ),
        ServiceSpec(
            name="nextcloud",
            image="nextcloud:28-apache",
            depends_on=["mariadb"],
            environment={
                "TZ": "${TZ}",
                "MYSQL_HOST": "mariadb",
                "MYSQL_DATABASE": "${MYSQL_DATABASE}",
                "MYSQL_USER": "${MYSQL_USER}",
                "MYSQL_PASSWORD": "${MYSQL_PASSWORD}",
                "NEXTCLOUD_ADMIN_USER": "${NEXTCLOUD_ADMIN_USER}",
                "NEXTCLOUD_ADMIN_PASSWORD": "${NEXTCLOUD_ADMIN_PASSWORD}",
            },
            volumes=[
                "./nextcloud/app:/var/www/html",
                "./nextcloud/data:/var/www/html/data",
            ],
            ports=[PortMapping(8081, 80)],
            dashboard_title="Nextcloud",
        ),
        ServiceSpec(
            name="uptime-kuma",
            image="louislam/uptime-kuma:latest",
            volumes=["./uptime-kuma:/app/data"],
            ports=[PortMapping(3001, 3001)],
            dashboard_title="Uptime Kuma",
        ),
        ServiceSpec(
            name="netdata",
            image="netdata/netdata:stable",
            pid="host",
            network_mode="host",
            host_ports=[19999],
            cap_add=["SYS_PTRACE", "SYS_ADMIN", "SYS_RESOURCE"],
            security_opt=["apparmor:unconfined"],
            environment={"TZ": "${TZ}"},
            volumes=[
                "/etc/passwd:/host/etc/passwd:ro",
                "/etc/group:/host/etc/group:ro",
                "/proc:/host/proc:ro",
                "/sys:/host/sys:ro",
                "/etc/os-release:/host/etc/os-release:ro",
                "./data/netdata:/var/lib/netdata",
            ],
            dashboard_title="Netdata",
        ),
        ServiceSpec(
            name="prometheus",
            image="prom/prometheus:latest",
            command="--config.file=/etc/prometheus/prometheus.yml",
            volumes=[
                "./monitoring/prometheus/prometheus.yml:/etc/prometheus/prometheus.yml:ro",
                "./monitoring/prometheus:/prometheus",
            ],
            ports=[PortMapping(9090, 9090)],
            extra_hosts=[f"{HOST_GATEWAY}:host-gateway"],
            dashboard_title="Prometheus",
            scrape_port=9090,
        ),
        ServiceSpec(
            name="node-exporter",
            image="prom/node-exporter:latest",
            pid="host",
            network_mode="host",
            host_ports=[9100],
            scrape_port=9100,
        ),
        ServiceSpec(
            name="cadvisor",
            image="gcr.io/cadvisor/cadvisor:latest",
            ports=[PortMapping(8082, 8080)],
            volumes=[
                "/:/rootfs:ro",
                "/var/run:/var/run:ro",
                "/sys:/sys:ro",
                "/var/lib/docker/:/var/lib/docker:ro",
            ],
            scrape_port=8080,
        ),
        ServiceSpec(
            name="grafana",
            image="grafana/grafana:latest",
            environment={
                "TZ": "${TZ}",
                "GF_SECURITY_ADMIN_USER": "${GRAFANA_ADMIN_USER}",
                "GF_SECURITY_ADMIN_PASSWORD": "${GRAFANA_ADMIN_PASSWORD}",
            },
            volumes=["./monitoring/grafana:/var/lib/grafana"],
            ports=[PortMapping(3000, 3000)],
            dashboard_title="Grafana",
        ),
        ServiceSpec(
            name="portainer",
            image="portainer/portainer-ce:latest",
            volumes=[
                "/var/run/docker.sock:/var/run/docker.sock",
                "./portainer:/data",
            ],
            ports=[PortMapping(9443, 9443)],
            dashboard_title="Portainer",
            dashboard_scheme="https",
        ),
    ]


def firewall_ports(services: Sequence[ServiceSpec]) -> List[int]:
    """Every host port the stack listens on, sorted and de-duplicated."""
    return sorted({port for service in services for port in service.exposed_ports})


def firewall_rules(services: Sequence[ServiceSpec], ssh_rule: str = SSH_FIREWALL_RULE) -> List[str]:
    """UFW allow rules: the SSH rule first, then one rule per exposed port.

    The firewall step passes the SSH rule the host actually supports
    (the OpenSSH profile or the bare port).
    """
    return [ssh_rule] + [str(port) for port in firewall_ports(services)]


def scrape_targets(services: Sequence[ServiceSpec]) -> Dict[str, str]:
    """Prometheus job name -> host:port for every scrapeable service.

    Host-networked exporters are reached through the Docker host gateway,
    bridge services by their service name.
    """
    targets = {}
    for service in services:
        if service.scrape_port is None:
            continue
        host = HOST_GATEWAY if service.host_networked else service.name
        targets[service.name] = f"{host}:{service.scrape_port}"
    return targets


def quick_links(services: Sequence[ServiceSpec], host: str = "localhost") -> List[Dict[str, str]]:
    """Title and URL for every service carrying a dashboard title."""
    links = []
    for service in services:
        if not service.dashboard_title or service.dashboard_port is None:
            continue
        links.append({
            "title": service.dashboard_title,
            "url": f"{service.dashboard_scheme}://{host}:{service.dashboard_port}",
        })
    return links
