import sys
import time
import logging
import threading

import psutil

from tika_server.supervisor.process_utils import (
    Command, build_java_args, cmder, log_process_output, terminate_process_tree,
)


def test_cmder_builds_command():
    command = cmder(threading.Event(), "java", "-jar", "tika.jar")
    assert command.args == ["java", "-jar", "tika.jar"]


def test_build_java_args():
    args = build_java_args("tika.jar", "localhost", "9998", {"b": "2", "a": "1"})
    assert args == ["-Da=1", "-Db=2", "-jar", "tika.jar", "--host", "localhost", "--port", "9998"]


def test_terminate_process_tree_stops_children():
    script = (
        "import subprocess, sys, time\n"
        "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
        "time.sleep(30)\n"
    )
    process = Command([sys.executable, "-c", script]).start()
    parent = psutil.Process(process.pid)
    children = []
    for _ in range(50):
        children = parent.children(recursive=True)
        if children:
            break
        time.sleep(0.1)

    terminate_process_tree(process, timeout=5)

    assert process.poll() is not None
    _, alive = psutil.wait_procs(children, timeout=5)
    assert alive == []


def test_terminate_process_tree_already_exited():
    process = Command([sys.executable, "-c", "pass"]).start()
    process.wait(timeout=10)
    terminate_process_tree(process)
    assert process.returncode == 0


def test_log_process_output(caplog):
    process = Command([sys.executable, "-c", "import sys; print('hello'); print('oops', file=sys.stderr)"]).start()
    with caplog.at_level(logging.INFO, logger="proc.test"):
        log_process_output(process, "test")
        process.wait(timeout=10)
        for _ in range(50):
            if {"hello", "oops"} <= {r.getMessage() for r in caplog.records}:
                break
            time.sleep(0.1)

    levels = {r.getMessage(): r.levelno for r in caplog.records if r.name == "proc.test"}
    assert levels["hello"] == logging.INFO
    assert levels["oops"] == logging.WARNING
