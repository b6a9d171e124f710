"""In-container bootstrap preludes.

A prelude is a bash script that performs setup and then ``exec``s the rest
of the command line, so preludes chain: each one wraps the command vector
produced by the next. Only the listed sub-steps run under ``sudo``; the
script itself runs as the unprivileged ``dev`` user.
"""

from __future__ import annotations

from dataclasses import dataclass

from davy.ssh_keys import AUTH_KEYS_ENV

DEFAULT_COMMAND = ("bash",)
SSH_PID_FILE = "/tmp/davy-sshd.pid"


@dataclass(frozen=True)
class Prelude:
    name: str
    script: str
    privileged_steps: tuple[str, ...] = ()


CLAUDE_LINK_SCRIPT = r"""set -e
mkdir -p /home/dev/.claude-auth/.claude
touch /home/dev/.claude-auth/.claude.json

if [ -e /home/dev/.claude ] && [ ! -L /home/dev/.claude ]; then
  rm -rf /home/dev/.claude
fi
if [ -e /home/dev/.claude.json ] && [ ! -L /home/dev/.claude.json ]; then
  rm -f /home/dev/.claude.json
fi

ln -sfn /home/dev/.claude-auth/.claude /home/dev/.claude
ln -sfn /home/dev/.claude-auth/.claude.json /home/dev/.claude.json
export CLAUDE_CONFIG_DIR=/home/dev/.claude

exec "$@"
"""

SSH_BOOTSTRAP_SCRIPT = rf"""set -e
require_tool() {{
  if ! command -v "$1" >/dev/null 2>&1; then
    echo "davy: '$1' is not installed in image ($2)." >&2
    echo "davy: rebuild with the latest rocky.Dockerfile." >&2
    exit 1
  fi
}}
require_tool sshd "SSH server"
require_tool ps "needed by remote IDE SSH helpers"
require_tool flock "needed by remote IDE SSH helpers"

if [ -z "${{{AUTH_KEYS_ENV}:-}}" ]; then
  echo "davy: {AUTH_KEYS_ENV} is missing." >&2
  exit 1
fi

mkdir -p /home/dev/.ssh
chmod 700 /home/dev/.ssh
if ! printf "%s" "${AUTH_KEYS_ENV}" | base64 -d >/home/dev/.ssh/authorized_keys 2>/dev/null; then
  printf "%s" "${AUTH_KEYS_ENV}" | base64 --decode >/home/dev/.ssh/authorized_keys
fi
if [ ! -s /home/dev/.ssh/authorized_keys ]; then
  echo "davy: decoded authorized_keys is empty." >&2
  exit 1
fi
chmod 600 /home/dev/.ssh/authorized_keys

sudo mkdir -p /run/sshd
if ! ls /etc/ssh/ssh_host_*_key >/dev/null 2>&1; then
  sudo ssh-keygen -A >/dev/null
fi

sudo /usr/sbin/sshd \
  -o PermitRootLogin=no \
  -o PasswordAuthentication=no \
  -o KbdInteractiveAuthentication=no \
  -o ChallengeResponseAuthentication=no \
  -o PubkeyAuthentication=yes \
  -o AuthorizedKeysFile=.ssh/authorized_keys \
  -o PidFile={SSH_PID_FILE}

exec "$@"
"""

CLAUDE_LINK_PRELUDE = Prelude(name="claude-auth-link", script=CLAUDE_LINK_SCRIPT)

SSH_BOOTSTRAP_PRELUDE = Prelude(
    name="ssh-bootstrap",
    script=SSH_BOOTSTRAP_SCRIPT,
    privileged_steps=("mkdir -p /run/sshd", "ssh-keygen -A", "/usr/sbin/sshd"),
)


def wrap_bash_script(script: str, command: list[str]) -> list[str]:
    """Wrap *command* so that *script* runs first with it as ``"$@"``.

    ``--`` fills ``$0``; the original command becomes the positional args.
    """
    return ["bash", "-lc", script, "--", *command]


def select_preludes(*, expose_ssh: bool, claude_auth: bool) -> list[Prelude]:
    """Preludes in execution order: SSH first, then the Claude auth links."""
    preludes: list[Prelude] = []
    if expose_ssh:
        preludes.append(SSH_BOOTSTRAP_PRELUDE)
    if claude_auth:
        preludes.append(CLAUDE_LINK_PRELUDE)
    return preludes


def compose_command(command: list[str] | tuple[str, ...], preludes: list[Prelude]) -> list[str]:
    """Fold *preludes* around *command*; the first prelude ends up outermost.

    An empty command defaults to an interactive ``bash`` before wrapping.
    """
    wrapped = list(command) or list(DEFAULT_COMMAND)
    for prelude in reversed(preludes):
        wrapped = wrap_bash_script(prelude.script, wrapped)
    return wrapped
