# Copyright 2025 Canonical Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Unit tests for the `upstart` machine library."""

import subprocess
from pathlib import Path
from unittest.mock import Mock, call

import pytest
from fake_bus import FakeBus
from pyfakefs.fake_filesystem import FakeFilesystem
from pytest_mock import MockerFixture

from service_libs.bus.upstart import JobState, UpstartConnection
from service_libs.config import ServiceConfig
from service_libs.errors import AlreadyInstalledError, UnsupportedConfigurationError, UpstartError
from service_libs.machine import UpstartServiceManager, initctl, normalize_job_state
from service_libs.machine.upstart import render_job
from service_libs.status import ServiceStatus

JOB_FILE = "/etc/init/example.conf"
UPSTART_PATH = "/com/ubuntu/Upstart"
JOB_PATH = "/com/ubuntu/Upstart/jobs/example"
INSTANCE_PATH = "/com/ubuntu/Upstart/jobs/example/_"
INSTANCE_INTERFACE = "com.ubuntu.Upstart0_6.Instance"


class FakeInstance:
    """Fake `upstart` job instance."""

    def __init__(self, goal: str, state: str) -> None:
        self._state = JobState(goal, state)

    def job_state(self) -> JobState:
        return self._state


class FakeJob:
    """Fake `upstart` job."""

    def __init__(self, instances: list[FakeInstance]) -> None:
        self._instances = instances

    def instances(self) -> list[FakeInstance]:
        return self._instances


class FakeUpstartConnection:
    """Fake connection to the `upstart` job manager."""

    def __init__(self, *instances: FakeInstance) -> None:
        self._job = FakeJob(list(instances))
        self.jobs: list[str] = []
        self.closed = False

    def __enter__(self) -> "FakeUpstartConnection":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def job(self, name: str) -> FakeJob:
        self.jobs.append(name)
        return self._job


def test_initctl(mocker: MockerFixture) -> None:
    """Test the `initctl` function."""
    mock_run = mocker.patch.object(subprocess, "run")
    mock_run.return_value = subprocess.CompletedProcess(
        args=["initctl", "start", "example"],
        returncode=1,
        stdout="",
        stderr="initctl: Unknown job: example",
    )

    stdout, exit_code = initctl("start", "example", check=False)
    assert stdout is None
    assert exit_code == 1

    with pytest.raises(UpstartError) as exec_info:
        initctl("start", "example")

    assert exec_info.value.message == (
        "initctl command 'initctl start example' failed with exit code 1. "
        + "reason: initctl: Unknown job: example"
    )


def test_initctl_not_found(mocker: MockerFixture) -> None:
    """Test that `initctl` raises `UpstartError` if the command cannot be run."""
    mocker.patch.object(subprocess, "run", side_effect=PermissionError(13, "Permission denied"))

    with pytest.raises(UpstartError) as exec_info:
        initctl("start", "example")

    assert exec_info.type is UpstartError
    assert exec_info.value.message.startswith("cannot run initctl. reason: ")


@pytest.mark.parametrize(
    "goal,state,expected",
    (
        pytest.param("start", "running", ServiceStatus.RUNNING, id="running"),
        pytest.param("start", "starting", ServiceStatus.START_PENDING, id="starting"),
        pytest.param("start", "pre-start", ServiceStatus.START_PENDING, id="pre-start"),
        pytest.param("start", "post-start", ServiceStatus.START_PENDING, id="post-start"),
        pytest.param("start", "spawned", ServiceStatus.RUNNING, id="unknown start state"),
        pytest.param("stop", "waiting", ServiceStatus.STOPPED, id="waiting"),
        pytest.param("stop", "stopping", ServiceStatus.STOP_PENDING, id="stopping"),
        pytest.param("stop", "pre-stop", ServiceStatus.STOP_PENDING, id="pre-stop"),
        pytest.param("stop", "post-stop", ServiceStatus.STOP_PENDING, id="post-stop"),
        pytest.param("stop", "killed", ServiceStatus.STOPPED, id="unknown stop state"),
        pytest.param("respawn", "running", ServiceStatus.ERROR, id="unknown goal"),
    ),
)
def test_normalize_job_state(goal, state, expected) -> None:
    """Test that raw job states map onto the expected status."""
    assert normalize_job_state([JobState(goal, state)]).state is expected


class TestNormalizeJobState:
    """Test policies of `normalize_job_state` beyond the state tables."""

    def test_no_instances(self) -> None:
        """Test that a job without instances is stopped."""
        assert normalize_job_state([]).state is ServiceStatus.STOPPED

    def test_unknown_start_state_is_running(self) -> None:
        """Test that unknown states are treated as running while the goal is to start."""
        status = normalize_job_state([JobState("start", "tmpfs-mounted")])
        assert status.state is ServiceStatus.RUNNING
        assert status.detail is None

    def test_first_instance_decides(self) -> None:
        """Test that only the first instance is considered."""
        status = normalize_job_state([JobState("stop", "waiting"), JobState("start", "running")])
        assert status.state is ServiceStatus.STOPPED

    def test_unknown_goal_detail(self) -> None:
        """Test that unknown goals explain why they are in error."""
        assert normalize_job_state([JobState("pause", "running")]).detail == "unknown goal 'pause'"


def test_render_job() -> None:
    """Test that `render_job` renders every configured setting."""
    config = ServiceConfig(
        name="example",
        display_name="Example service",
        description="Example daemon",
        executable="/usr/sbin/example",
        arguments=("-D",),
        working_directory="/var/lib/svc",
        user_name="svc",
        chroot="/srv/jail",
        environment={"EXAMPLE_OPTIONS": "-b"},
    )
    assert render_job(config) == (
        "# Example daemon\n"
        "\n"
        'description    "Example service"\n'
        "\n"
        "kill signal INT\n"
        "chroot /srv/jail\n"
        "chdir /var/lib/svc\n"
        "start on filesystem or runlevel [2345]\n"
        "stop on runlevel [!2345]\n"
        "\n"
        "setuid svc\n"
        'env EXAMPLE_OPTIONS="-b"\n'
        "\n"
        "respawn\n"
        "respawn limit 10 5\n"
        "umask 022\n"
        "\n"
        "console none\n"
        "\n"
        "pre-start script\n"
        "    test -x /usr/sbin/example || { stop; exit 0; }\n"
        "end script\n"
        "\n"
        "# Start\n"
        'exec /usr/sbin/example "-D"\n'
    )


class TestUpstartServiceManager:
    """Test the `UpstartServiceManager` class."""

    @pytest.fixture
    def config(self) -> ServiceConfig:
        """Create a service configuration."""
        return ServiceConfig(name="example", executable="/usr/sbin/example")

    @pytest.fixture
    def program(self) -> Mock:
        """Create a mocked program."""
        return Mock()

    @pytest.fixture
    def dial(self) -> Mock:
        """Create a mocked control plane dialer."""
        return Mock(return_value=FakeUpstartConnection(FakeInstance("start", "running")))

    @pytest.fixture
    def service_manager(self, fs: FakeFilesystem, program, config, dial) -> UpstartServiceManager:
        """Create an `UpstartServiceManager` object on a fake filesystem."""
        fs.create_dir("/etc/init")
        return UpstartServiceManager(program, config, dial=dial)

    @pytest.fixture
    def mock_initctl(self, mocker: MockerFixture) -> Mock:
        """Create a mocked `initctl` function."""
        return mocker.patch("service_libs.machine.upstart.initctl")

    def test_str(self, service_manager) -> None:
        """Test that the service manager falls back to the service name."""
        assert str(service_manager) == "example"

    def test_install(self, service_manager, mock_initctl) -> None:
        """Test the `install` method."""
        service_manager.install()
        assert Path(JOB_FILE).read_text().endswith("exec /usr/sbin/example\n")
        mock_initctl.assert_not_called()

    def test_install_already_installed(self, fs, service_manager) -> None:
        """Test that `install` never overwrites an existing job configuration."""
        fs.create_file(JOB_FILE, contents="# keep me\n")

        with pytest.raises(AlreadyInstalledError):
            service_manager.install()

        assert Path(JOB_FILE).read_text() == "# keep me\n"

    def test_user_service(self, program, dial) -> None:
        """Test that user services are rejected."""
        config = ServiceConfig(name="example", user_service=True)
        with pytest.raises(UnsupportedConfigurationError) as exec_info:
            UpstartServiceManager(program, config, dial=dial).status()

        assert exec_info.value.message == "user services are not supported on upstart"
        dial.assert_not_called()

    def test_uninstall(self, fs, service_manager) -> None:
        """Test the `uninstall` method."""
        fs.create_file(JOB_FILE)
        service_manager.uninstall()
        assert not Path(JOB_FILE).exists()

    def test_start(self, service_manager, mock_initctl) -> None:
        """Test the `start` method."""
        service_manager.start()
        mock_initctl.assert_called_with("start", "example")

    def test_stop(self, service_manager, mock_initctl) -> None:
        """Test the `stop` method."""
        service_manager.stop()
        mock_initctl.assert_called_with("stop", "example")

    def test_restart(self, mocker: MockerFixture, service_manager, mock_initctl) -> None:
        """Test that `restart` stops, waits briefly, then starts the job."""
        manager = Mock()
        manager.attach_mock(mock_initctl, "initctl")
        manager.attach_mock(mocker.patch("service_libs.machine.upstart.time.sleep"), "sleep")

        service_manager.restart()

        assert manager.mock_calls == [
            call.initctl("stop", "example"),
            call.sleep(0.05),
            call.initctl("start", "example"),
        ]

    def test_restart_stop_failed(
        self, mocker: MockerFixture, service_manager, mock_initctl
    ) -> None:
        """Test that `restart` does not start the job if stopping it fails."""
        mocker.patch("service_libs.machine.upstart.time.sleep")
        mock_initctl.side_effect = UpstartError("initctl command failed")

        with pytest.raises(UpstartError):
            service_manager.restart()

        mock_initctl.assert_called_once_with("stop", "example")

    def test_status_not_installed(self, service_manager, dial) -> None:
        """Test that `status` does not dial the control plane if not installed."""
        dial.side_effect = AssertionError("control plane must not be dialed")
        assert service_manager.status().state is ServiceStatus.NOT_INSTALLED
        dial.assert_not_called()

    def test_status_running(self, fs, service_manager, dial) -> None:
        """Test that `status` reports a running job and closes the connection."""
        fs.create_file(JOB_FILE)
        assert service_manager.status().state is ServiceStatus.RUNNING
        assert dial.return_value.jobs == ["example"]
        assert dial.return_value.closed

    def test_status_stop_pending(self, fs, service_manager, dial) -> None:
        """Test that `status` reports a job stopping in `post-stop` as stop pending."""
        fs.create_file(JOB_FILE)
        dial.return_value = FakeUpstartConnection(FakeInstance("stop", "post-stop"))
        assert service_manager.status().state is ServiceStatus.STOP_PENDING

    def test_status_no_instances(self, fs, service_manager, dial) -> None:
        """Test that `status` reports a job without instances as stopped."""
        fs.create_file(JOB_FILE)
        dial.return_value = FakeUpstartConnection()
        assert service_manager.status().state is ServiceStatus.STOPPED

    def test_status_over_job_manager_connection(self, fs, program, config) -> None:
        """Test that `status` reads the job state through an `UpstartConnection`."""
        fs.create_dir("/etc/init")
        fs.create_file(JOB_FILE)
        fake_bus = FakeBus(
            {
                (UPSTART_PATH, "GetJobByName", ("example",)): ("o", (JOB_PATH,)),
                (JOB_PATH, "GetAllInstances", ()): ("ao", ([INSTANCE_PATH],)),
                (INSTANCE_PATH, "Get", (INSTANCE_INTERFACE, "goal")): ("v", (("s", "stop"),)),
                (INSTANCE_PATH, "Get", (INSTANCE_INTERFACE, "state")): (
                    "v",
                    (("s", "post-stop"),),
                ),
            }
        )
        service_manager = UpstartServiceManager(
            program, config, dial=lambda: UpstartConnection(fake_bus)
        )

        assert service_manager.status().state is ServiceStatus.STOP_PENDING
        assert fake_bus.members() == ["GetJobByName", "GetAllInstances", "Get", "Get"]
        assert fake_bus.closed

    def test_start_initctl_missing(self, mocker: MockerFixture, service_manager) -> None:
        """Test that `start` raises `UpstartError` if `initctl` is not installed."""
        mocker.patch.object(
            subprocess, "run", side_effect=FileNotFoundError(2, "No such file or directory")
        )

        with pytest.raises(UpstartError):
            service_manager.start()

    def test_run_interactive(self, mocker: MockerFixture, service_manager, program) -> None:
        """Test that `run` does not wait for a signal when attached to a terminal."""
        mocker.patch("service_libs.host.is_interactive", return_value=True)
        mock_wait = mocker.patch("service_libs.host.wait_for_signal")

        service_manager.run()

        program.start.assert_called_once_with(service_manager)
        mock_wait.assert_not_called()
        program.stop.assert_called_once_with(service_manager)
