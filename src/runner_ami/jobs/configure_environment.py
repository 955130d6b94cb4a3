#!/usr/bin/env python3
"""Builder host configuration for AWS runner images.

Runs on the Packer builder instance (as root) and prepares the system the
way the hosted runner images expect: /etc/environment variables, swap on
instance storage, sysctl tuning, the tool cache directory and a handful of
cloud-specific tweaks. All paths are resolved under ``root`` so the job can
be pointed at a chroot or a scratch directory.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union
from .base import BaseJob
from runner_ami.core import constants
from runner_ami.core.processors import ProcessingResult, StepProcessor
from runner_ami.utils.commands import CommandRunner

SYSCTL_SETTINGS = [
    # https://www.elastic.co/guide/en/elasticsearch/reference/current/vm-max-map-count.html
    "vm.max_map_count=262144",
    # https://kind.sigs.k8s.io/docs/user/known-issues/#pod-errors-due-to-too-many-open-files
    "fs.inotify.max_user_watches=655360",
    "fs.inotify.max_user_instances=1280",
    # https://github.com/actions/runner-images/issues/9491
    "vm.mmap_rnd_bits=28",
    "net.core.rmem_default = 262144",
    "net.core.rmem_max = 16777216",
    "net.core.wmem_default = 262144",
    "net.core.wmem_max = 16777216",
]

IPV6_DISABLE_SETTINGS = [
    "net.ipv6.conf.all.disable_ipv6 = 1",
    "net.ipv6.conf.default.disable_ipv6 = 1",
]

# https://github.com/actions/runner-images/pull/7860
NETFILTER_RULE = (
    'ACTION=="add", SUBSYSTEM=="module", KERNEL=="nf_conntrack", '
    'RUN+="/usr/sbin/sysctl net.netfilter.nf_conntrack_tcp_be_liberal=1"'
)

FSTAB_SWAP_ENTRY = "/mnt/swapfile none swap sw 0 0"


def set_etc_environment_variable(env_file: Path, name: str, value: str) -> None:
    """Set ``name=value`` in an /etc/environment style file, replacing an existing key."""
    lines = env_file.read_text(encoding="utf-8").splitlines() if env_file.exists() else []
    entry = f"{name}={value}"
    for index, line in enumerate(lines):
        if line.startswith(f"{name}="):
            lines[index] = entry
            break
    else:
        lines.append(entry)
    env_file.parent.mkdir(parents=True, exist_ok=True)
    env_file.write_text("\n".join(lines) + "\n", encoding="utf-8")


def get_etc_environment_variable(env_file: Path, name: str) -> Optional[str]:
    if not env_file.exists():
        return None
    for line in env_file.read_text(encoding="utf-8").splitlines():
        if line.startswith(f"{name}="):
            return line.split("=", 1)[1]
    return None


def append_lines(path: Path, lines: Iterable[str]) -> None:
    """Append lines to ``path``, like ``echo ... | tee -a``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    prefix = "" if not existing or existing.endswith("\n") else "\n"
    with open(path, "a", encoding="utf-8") as f:
        f.write(prefix + "".join(f"{line}\n" for line in lines))


def replace_in_file(path: Path, pattern: str, replacement: str) -> bool:
    """Regex substitute in place; returns False when the file is missing."""
    if not path.exists():
        return False
    content = path.read_text(encoding="utf-8")
    path.write_text(re.sub(pattern, replacement, content, flags=re.MULTILINE), encoding="utf-8")
    return True


class ConfigureEnvironmentJob(BaseJob):
    """Job to configure the builder host environment"""

    def __init__(
        self,
        config_manager=None,
        root: Union[str, Path] = "/",
        runner: Optional[CommandRunner] = None,
        helper_scripts: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(config_manager, job_name="configure_environment", **kwargs)
        self.root = Path(root)
        self.runner = runner or CommandRunner()
        self.settings: Dict[str, Any] = self.config_manager.get_environment_config()
        self.helper_scripts = (
            helper_scripts
            or os.environ.get("HELPER_SCRIPTS")
            or self.settings.get("helper_scripts")
        )

    def path(self, absolute: str) -> Path:
        return self.root / absolute.lstrip("/")

    @property
    def env_file(self) -> Path:
        return self.path("/etc/environment")

    def set_env(self, name: str, value: str) -> None:
        set_etc_environment_variable(self.env_file, name, value)

    def execute(
        self,
        image_version: Optional[str] = None,
        image_os: Optional[str] = None,
        disable_ipv6: Optional[bool] = None,
        aws_default_region: Optional[str] = None,
        **kwargs,
    ):
        """Apply the configuration steps in order.

        A failing required step aborts the job. Failures of the cosmetic motd,
        fwupd and apt ESM steps are recorded in the result and logged.
        """
        image_version = image_version or os.environ.get("IMAGE_VERSION", "")
        image_os = image_os or os.environ.get("IMAGE_OS", "")
        if disable_ipv6 is None:
            disable_ipv6 = bool(self.settings.get("disable_ipv6")) or (
                os.environ.get("DISABLE_IPV6", "false") == "true"
            )
        aws_default_region = aws_default_region or self.settings.get(
            "aws_default_region", constants.DEFAULT_AWS_REGION
        )

        required = StepProcessor(name=f"{self.job_name}_processor")
        result = required.run_steps(
            [
                ("image variables", lambda: self.configure_image_variables(image_version, image_os)),
                ("swap", self.configure_swap),
                ("hosts", self.configure_hosts),
                ("tool cache", self.configure_toolcache),
                ("sysctl", lambda: self.configure_sysctl(disable_ipv6)),
                ("netfilter", self.configure_netfilter),
                ("invoke_tests", self.link_invoke_tests),
                ("cloudwatch agent", self.prepare_cloudwatch_agent),
                ("aws cli", lambda: self.configure_aws_cli(aws_default_region)),
                ("dns", self.configure_dns),
                ("openssl", self.configure_openssl),
            ],
            operation_name=self.job_name,
            correlation_id=self.correlation_id,
        )

        # Message-of-the-day and advertisement tweaks never fail the image
        cosmetic = StepProcessor(
            name=f"{self.job_name}_cosmetic_processor", continue_on_error=True
        )
        cosmetic_result = cosmetic.run_steps(
            [
                ("motd", self.disable_motd_updates),
                ("fwupd", self.disable_fwupd),
                ("apt esm hook", self.disable_esm_hook),
            ],
            operation_name=f"{self.job_name} (cosmetic)",
            correlation_id=self.correlation_id,
        )
        for step in cosmetic_result.failed_steps:
            self.log(f"Optional step '{step}' failed, continuing", level="warning")

        self.log("AWS environment configuration completed")
        return ProcessingResult.combine(result, cosmetic_result)

    def configure_image_variables(self, image_version: str, image_os: str) -> None:
        self.set_env("ImageVersion", image_version)
        self.set_env("ImageOS", image_os)
        # Accept the End-User Licensing Agreement for tools that ask for it
        self.set_env("ACCEPT_EULA", "Y")
        # https://github.com/actions/runner-images/issues/491
        self.path("/etc/skel/.config/configstore").mkdir(parents=True, exist_ok=True)
        self.set_env("XDG_CONFIG_HOME", "$HOME/.config")

    def configure_swap(self) -> Optional[Path]:
        """Create a swap file on instance storage; returns its path or None."""
        mnt = self.path("/mnt")
        if self.runner.run(["mountpoint", "-q", mnt], check=False).returncode == 0:
            self.log("Ephemeral storage detected at /mnt, configuring swap file")
            swapfile = self._create_swap_file(mnt)
            append_lines(self.path("/etc/fstab"), [FSTAB_SWAP_ENTRY])
            self.log(f"Swap file created at {swapfile}")
            return swapfile

        self.log("No ephemeral storage found at /mnt")
        device = self.find_instance_store_device()
        if not device:
            self.log("No instance store found, swap will be handled by system if needed")
            return None

        self.log(f"Found NVMe instance store device: {device}")
        self.runner.run(["mkfs.ext4", "-F", device])
        self.runner.run(["mount", device, mnt])
        swapfile = self._create_swap_file(mnt)
        self.log("Instance store mounted at /mnt and swap file created")
        return swapfile

    def find_instance_store_device(self) -> Optional[str]:
        """First NVMe disk that is not the root volume (nvme0n1)."""
        result = self.runner.run(["lsblk", "-dn", "-o", "NAME"], check=False)
        for name in result.stdout.split():
            if name.startswith("nvme") and name != "nvme0n1":
                return f"/dev/{name}"
        return None

    def _create_swap_file(self, mnt: Path) -> Path:
        swapfile = mnt / "swapfile"
        allocated = self.runner.run(
            ["fallocate", "-l", constants.SWAP_FILE_SIZE, swapfile], check=False
        )
        if allocated.returncode != 0:
            self.runner.run(
                [
                    "dd",
                    "if=/dev/zero",
                    f"of={swapfile}",
                    "bs=1M",
                    f"count={constants.SWAP_FILE_SIZE_MB}",
                ]
            )
        self.runner.run(["chmod", "600", swapfile])
        self.runner.run(["mkswap", swapfile])
        return swapfile

    def configure_hosts(self) -> None:
        # Add localhost alias to ::1 IPv6
        replace_in_file(
            self.path("/etc/hosts"),
            r"::1 ip6-localhost ip6-loopback",
            "::1     localhost ip6-localhost ip6-loopback",
        )

    def configure_toolcache(self) -> Path:
        toolcache = self.path(constants.AGENT_TOOLSDIRECTORY)
        toolcache.mkdir(parents=True, exist_ok=True)
        self.set_env("AGENT_TOOLSDIRECTORY", constants.AGENT_TOOLSDIRECTORY)
        self.set_env("RUNNER_TOOL_CACHE", constants.AGENT_TOOLSDIRECTORY)
        for dirpath, dirnames, filenames in os.walk(toolcache):
            os.chmod(dirpath, 0o777)
            for filename in filenames:
                os.chmod(os.path.join(dirpath, filename), 0o777)
        return toolcache

    def configure_sysctl(self, disable_ipv6: bool = False) -> None:
        settings = list(SYSCTL_SETTINGS)
        if disable_ipv6:
            settings.extend(IPV6_DISABLE_SETTINGS)
        append_lines(self.path("/etc/sysctl.conf"), settings)

    def configure_netfilter(self) -> None:
        append_lines(self.path("/etc/udev/rules.d/50-netfilter.rules"), [NETFILTER_RULE])

    def link_invoke_tests(self) -> Optional[Path]:
        """Expose the image test entry point as /usr/local/bin/invoke_tests."""
        if not self.helper_scripts:
            self.log("HELPER_SCRIPTS is not set, skipping invoke_tests link", level="warning")
            return None

        script = self.path(str(Path(self.helper_scripts) / "invoke-tests.sh"))
        if not script.exists():
            raise FileNotFoundError(f"Test entry point not found: {script}")
        script.chmod(script.stat().st_mode | 0o111)

        link = self.path("/usr/local/bin/invoke_tests")
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink() or link.exists():
            link.unlink()
        # Target is the path inside the image, valid once root is mounted as /
        link.symlink_to(Path(self.helper_scripts) / "invoke-tests.sh")
        return link

    def disable_motd_updates(self) -> None:
        replace_in_file(self.path("/etc/default/motd-news"), r"ENABLED=1", "ENABLED=0")

    def disable_fwupd(self) -> bool:
        """Mask fwupd-refresh.timer when present; not needed on cloud VMs."""
        masked = False
        listed = self.runner.run(
            ["systemctl", "list-unit-files", "fwupd-refresh.timer"], check=False
        )
        if listed.returncode == 0:
            self.log("Masking fwupd-refresh.timer...")
            self.runner.run(["systemctl", "mask", "fwupd-refresh.timer"])
            masked = True

        replace_in_file(
            self.path("/etc/fwupd/daemon.conf"), r"UpdateMotd=true", "UpdateMotd=false"
        )
        return masked

    def prepare_cloudwatch_agent(self) -> None:
        self.path("/opt/aws/amazon-cloudwatch-agent/etc").mkdir(parents=True, exist_ok=True)
        self.path("/var/log/amazon-cloudwatch-agent").mkdir(parents=True, exist_ok=True)

    def configure_aws_cli(self, region: str) -> None:
        self.set_env("AWS_DEFAULT_REGION", region)
        self.set_env("AWS_PAGER", "")

    def disable_esm_hook(self) -> bool:
        # Ubuntu Pro advertisements in apt output
        hook = self.path("/etc/apt/apt.conf.d/20apt-esm-hook.conf")
        if not hook.exists():
            return False
        hook.rename(hook.with_name(hook.name + ".disabled"))
        return True

    def configure_dns(self) -> bool:
        resolved = self.path("/etc/systemd/resolved.conf")
        if not resolved.exists():
            return False
        replace_in_file(resolved, r"#DNS=", f"DNS={constants.AWS_DNS_RESOLVER}")
        replace_in_file(resolved, r"#FallbackDNS=", f"FallbackDNS={constants.FALLBACK_DNS}")
        return True

    def is_ubuntu22(self) -> bool:
        os_release = self.path("/etc/os-release")
        if not os_release.exists():
            return False
        match = re.search(
            r'^VERSION_ID="?([^"\n]+)"?', os_release.read_text(encoding="utf-8"), re.MULTILINE
        )
        return bool(match and match.group(1).startswith("22."))

    def configure_openssl(self) -> bool:
        """Stop OpenSSL from loading providers on Ubuntu 22."""
        if not self.is_ubuntu22():
            return False
        return replace_in_file(
            self.path("/etc/ssl/openssl.cnf"),
            r"^openssl_conf = openssl_init",
            "#openssl_conf = openssl_init",
        )
