"""Follow a submitted backup Job (``run --wait``).

Provides background thread-based following of a Job with:
- Job and pod event streaming
- Log streaming from the Job's pod (found via the ``job-name`` label)
- Shutdown via threading.Event

The main thread decides when the Job is done using ``wait_for_job``.
"""

import logging
import threading
import time

from kubernetes import client, watch
from kubernetes.client.exceptions import ApiException

from etcd_backup.errors import JobFailedError

logger = logging.getLogger(__name__)


class JobMonitor:
    """Stream events and pod logs of a Job until stopped.

    Usage:
        monitor = JobMonitor(v1_client, job_name, namespace)
        monitor.start()
        try:
            wait_for_job(batch_client, job_name, namespace)
        finally:
            monitor.stop()
    """

    def __init__(self, v1: client.CoreV1Api, job_name: str, namespace: str, poll_interval: float = 2.0):
        self.v1 = v1
        self.job_name = job_name
        self.namespace = namespace
        self.poll_interval = poll_interval
        self.stop_event = threading.Event()
        self.log_thread: threading.Thread | None = None
        self.event_thread: threading.Thread | None = None

    def start(self) -> None:
        """Start log and event threads."""
        self.log_thread = threading.Thread(
            target=self._stream_logs,
            name=f"log-stream-{self.job_name}",
            daemon=True
        )
        self.event_thread = threading.Thread(
            target=self._stream_events,
            name=f"event-stream-{self.job_name}",
            daemon=True
        )
        self.log_thread.start()
        self.event_thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Signal both threads to stop and wait up to ``timeout`` seconds each."""
        self.stop_event.set()
        if self.log_thread:
            self.log_thread.join(timeout=timeout)
        if self.event_thread:
            self.event_thread.join(timeout=timeout)

    def find_pod(self) -> str | None:
        """Return the name of the Job's pod once its container has started.

        Polls until a container is running or terminated, or until stopped.
        """
        while not self.stop_event.is_set():
            try:
                pods = self.v1.list_namespaced_pod(
                    self.namespace,
                    label_selector=f"job-name={self.job_name}"
                )
                for pod in pods.items or []:
                    for status in pod.status.container_statuses or []:
                        if status.state.running or status.state.terminated:
                            return pod.metadata.name
            except ApiException as exc:
                logger.debug(f"Waiting for pod of Job {self.job_name}: {exc.reason}")

            self.stop_event.wait(self.poll_interval)
        return None

    def _stream_logs(self) -> None:
        """Print the pod's log lines as they arrive (background thread)."""
        try:
            pod_name = self.find_pod()
            if pod_name is None:
                return

            try:
                log_stream = self.v1.read_namespaced_pod_log(
                    pod_name,
                    self.namespace,
                    follow=True,
                    _preload_content=False
                )
                for line in log_stream:
                    if self.stop_event.is_set():
                        break
                    line_str = line.decode('utf-8').rstrip('\n\r')
                    if line_str:
                        print(f"[{pod_name}] {line_str}", flush=True)

            except ApiException as exc:
                # 400: container already finished, read what is there
                if exc.status != 400:
                    if not self.stop_event.is_set():
                        logger.warning(f"Log streaming ended for {pod_name}: {exc.reason}")
                    return
                logs = self.v1.read_namespaced_pod_log(pod_name, self.namespace)
                for line in (logs or '').split('\n'):
                    if line.strip():
                        print(f"[{pod_name}] {line}", flush=True)

        except Exception as exc:
            if not self.stop_event.is_set():
                logger.warning(f"Error streaming logs for Job {self.job_name}: {exc}")

    def owns_event(self, involved) -> bool:
        """True for events about the Job itself or one of its pods."""
        if involved is None:
            return False
        if involved.kind == "Job":
            return involved.name == self.job_name
        # Job pods are named <job-name>-<random>
        return involved.kind == "Pod" and (involved.name or "").startswith(f"{self.job_name}-")

    def _stream_events(self) -> None:
        """Print Job and pod events as they arrive (background thread).

        Watches the whole namespace and keeps events whose involvedObject is
        the Job or one of its pods (FailedScheduling, FailedMount, pull errors).

        Reconnects after watch timeouts, resuming from the last
        resourceVersion so events are not replayed.
        """
        resource_version = None
        try:
            while not self.stop_event.is_set():
                w = watch.Watch()
                kwargs = {'timeout_seconds': 60}
                if resource_version:
                    kwargs['resource_version'] = resource_version

                try:
                    for event in w.stream(self.v1.list_namespaced_event, self.namespace, **kwargs):
                        if self.stop_event.is_set():
                            break
                        raw = event.get('raw_object') or {}
                        resource_version = raw.get('metadata', {}).get('resourceVersion', resource_version)

                        obj = event['object']
                        involved = obj.involved_object
                        if not self.owns_event(involved):
                            continue
                        print(f"[EVENT] {involved.kind}/{involved.name} {obj.reason}: {obj.message}", flush=True)

                except ApiException as exc:
                    # 410 Gone: resourceVersion too old, start fresh
                    if exc.status == 410:
                        resource_version = None
                        continue
                    if not self.stop_event.is_set():
                        logger.warning(f"Event watch interrupted for Job {self.job_name}: {exc.reason}")
                    break

                finally:
                    w.stop()

                self.stop_event.wait(self.poll_interval)

        except Exception as exc:
            if not self.stop_event.is_set():
                logger.warning(f"Error streaming events for Job {self.job_name}: {exc}")


def job_outcome(job: client.V1Job) -> tuple[str | None, str]:
    """Return ('Complete' | 'Failed' | None, message) from Job conditions."""
    status = job.status
    for condition in (status.conditions if status else None) or []:
        if condition.status != "True":
            continue
        if condition.type in {"Complete", "Failed"}:
            message = condition.message or condition.reason or ""
            return condition.type, message
    return None, ""


def wait_for_job(
    batch: client.BatchV1Api,
    job_name: str,
    namespace: str,
    timeout: float | None = None,
    poll_interval: float = 5.0
) -> None:
    """Block until the Job completes.

    Args:
        batch: BatchV1Api client
        job_name: Job to wait for
        namespace: Kubernetes namespace
        timeout: Max seconds to wait, None waits indefinitely
        poll_interval: Seconds between status reads

    Raises:
        JobFailedError: If the Job fails, times out, or its status can't be read
    """
    deadline = time.monotonic() + timeout if timeout is not None else None
    while True:
        try:
            job = batch.read_namespaced_job_status(job_name, namespace)
        except ApiException as exc:
            raise JobFailedError(f"Error reading status of Job {namespace}/{job_name}: {exc.status} {exc.reason}")

        outcome, message = job_outcome(job)
        if outcome == "Complete":
            logger.info(f"Job {namespace}/{job_name} completed")
            return
        if outcome == "Failed":
            raise JobFailedError(f"Job {namespace}/{job_name} failed: {message}")

        if deadline is not None and time.monotonic() >= deadline:
            raise JobFailedError(f"Job {namespace}/{job_name} did not finish within {timeout}s")

        time.sleep(poll_interval)
