#!/usr/bin/env python3
"""
Tests for Nova Reel job handling, status lookups and background polling
"""

import itertools
import json
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError

from bedrock_client import BedrockService
from config import BEDROCK_REGION
from conftest import FakeBedrockRuntime, client_error
from job_manager import JobManager
from video_job_poller import VideoJobPoller
from video_service import PromptTooLongError, VideoService, s3_uri_to_public_url

ARN_1 = "arn:aws:bedrock:us-east-1:123:async-invoke/one"
ARN_2 = "arn:aws:bedrock:us-east-1:123:async-invoke/two"


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_openai(content):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(content)))


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def jobs():
    return JobManager(persistence_file=None)


def make_service(runtime, jobs, sleeps, openai_client=None):
    return VideoService(
        bedrock=BedrockService(client=runtime, models=["amazon.nova-pro-v1:0"]),
        openai_client=openai_client,
        jobs=jobs,
        bucket="study-videos",
        sleep=sleeps.append,
        shot_delay=0,
    )


def test_s3_uri_to_public_url():
    assert s3_uri_to_public_url("s3://bucket/shot-1/abc/", "us-east-1") == \
        "https://bucket.s3.us-east-1.amazonaws.com/shot-1/abc/output.mp4"
    assert s3_uri_to_public_url("s3://bucket", "us-east-1") == "https://bucket.s3.us-east-1.amazonaws.com/output.mp4"
    assert s3_uri_to_public_url("https://example.com/x") is None
    assert s3_uri_to_public_url("") is None


def test_direct_video_rejects_long_prompt(jobs, sleeps):
    service = make_service(FakeBedrockRuntime(), jobs, sleeps)
    with pytest.raises(PromptTooLongError) as excinfo:
        service.start_direct_video("x" * 513)
    assert excinfo.value.length == 513
    assert excinfo.value.limit == 512


def test_direct_video_retries_when_throttled(jobs, sleeps):
    runtime = FakeBedrockRuntime({
        "start_async_invoke": [
            client_error("ThrottlingException", "Too many requests", "StartAsyncInvoke"),
            ARN_1,
        ],
    })
    service = make_service(runtime, jobs, sleeps)

    result = service.start_direct_video("A calm ocean at sunrise")

    assert result["invocationArn"] == ARN_1
    assert result["status"] == "InProgress"
    assert result["outputUri"] == "s3://study-videos/"
    assert sleeps == [5]
    model_id, model_input, output_config = runtime.async_calls[-1]
    assert model_input["taskType"] == "TEXT_VIDEO"
    assert model_input["textToVideoParams"] == {"text": "A calm ocean at sunrise"}
    assert model_input["videoGenerationConfig"]["durationSeconds"] == 6
    assert output_config == {"s3OutputDataConfig": {"s3Uri": "s3://study-videos/"}}


def test_direct_video_gives_up_on_other_errors(jobs, sleeps):
    runtime = FakeBedrockRuntime({
        "start_async_invoke": client_error("AccessDeniedException", "denied", "StartAsyncInvoke"),
    })
    service = make_service(runtime, jobs, sleeps)
    with pytest.raises(ClientError) as excinfo:
        service.start_direct_video("A calm ocean at sunrise")
    assert excinfo.value.response["Error"]["Code"] == "AccessDeniedException"
    assert sleeps == []


def test_direct_video_stops_after_three_throttled_attempts(jobs, sleeps):
    throttled = client_error("ThrottlingException", "Too many requests", "StartAsyncInvoke")
    runtime = FakeBedrockRuntime({"start_async_invoke": [throttled, throttled, throttled, ARN_1]})
    service = make_service(runtime, jobs, sleeps)

    with pytest.raises(ClientError) as excinfo:
        service.start_direct_video("A calm ocean at sunrise")

    assert excinfo.value.response["Error"]["Code"] == "ThrottlingException"
    assert sleeps == [5, 10]
    assert len(runtime.async_calls) == 3


def test_openai_videos_reports_failed_shots(jobs, sleeps):
    script = {
        "title": "Photosynthesis",
        "duration": 18,
        "shots": [
            {"prompt": "p" * 600, "description": "Leaves in sunlight"},
            {"prompt": "Chloroplast close-up", "description": "Inside the cell"},
        ],
        "transcript": "Plants turn light into food.",
    }
    runtime = FakeBedrockRuntime({
        "start_async_invoke": [ARN_1, client_error("ValidationException", "bad shot", "StartAsyncInvoke")],
    })
    openai_client = make_openai("```json\n" + json.dumps(script) + "\n```")
    service = make_service(runtime, jobs, sleeps, openai_client=openai_client)

    result = service.generate_openai_videos("Plants make food from light", "educational")

    assert result["totalShots"] == 2
    assert result["successfulJobs"] == 1
    assert result["failedJobs"] == 1
    job = result["videoJobs"][0]
    assert job["invocationArn"] == ARN_1
    assert job["s3Path"] == "s3://study-videos/shot-1/"
    assert len(job["prompt"]) == 512
    assert job["shot"]["originalLength"] == 600
    assert result["failedJobDetails"][0]["shotId"] == "shot-2"
    assert "bad shot" in result["failedJobDetails"][0]["error"]


def test_check_status_completed(jobs, sleeps):
    runtime = FakeBedrockRuntime()
    runtime.async_results[ARN_1] = {
        "status": "Completed",
        "outputDataConfig": {"s3OutputDataConfig": {"s3Uri": "s3://study-videos/shot-1/abc"}},
    }
    status = make_service(runtime, jobs, sleeps).check_status(ARN_1)

    assert status["status"] == "Completed"
    assert status["outputLocation"] == "s3://study-videos/shot-1/abc/output.mp4"
    assert status["s3Url"] == f"https://study-videos.s3.{BEDROCK_REGION}.amazonaws.com/shot-1/abc/output.mp4"


def test_check_status_in_progress_has_no_url(jobs, sleeps):
    runtime = FakeBedrockRuntime()
    runtime.async_results[ARN_1] = {"status": "InProgress"}
    status = make_service(runtime, jobs, sleeps).check_status(ARN_1)
    assert status["outputLocation"] is None
    assert status["s3Url"] is None


# Poller

def test_poller_stops_when_all_terminal():
    answers = {
        ARN_1: iter([{"status": "InProgress"}, {"status": "Completed"}]),
        ARN_2: iter([{"status": "Failed", "failureMessage": "bad"}]),
    }
    updates = []
    sleeps = []
    poller = VideoJobPoller(lambda arn: next(answers[arn]), interval=10, timeout=100,
                            sleep=sleeps.append, clock=lambda: 0)

    final = poller.poll([ARN_1, ARN_2], on_update=lambda arn, status: updates.append((arn, status["status"])))

    assert final[ARN_1]["status"] == "Completed"
    assert final[ARN_2]["status"] == "Failed"
    assert updates == [(ARN_2, "Failed"), (ARN_1, "Completed")]
    assert sleeps == [10]


def test_poller_marks_timed_out_jobs():
    clock = itertools.chain([0], itertools.repeat(100))
    poller = VideoJobPoller(lambda arn: {"status": "InProgress"}, interval=10, timeout=50,
                            sleep=lambda seconds: None, clock=lambda: next(clock))

    final = poller.poll([ARN_1])

    assert final[ARN_1]["status"] == "InProgress"
    assert final[ARN_1]["timedOut"] is True


def test_poller_fails_job_after_repeated_errors():
    def check(arn):
        raise client_error("InternalServerException", "boom", "GetAsyncInvoke")

    poller = VideoJobPoller(check, interval=1, timeout=100, max_errors=2,
                            sleep=lambda seconds: None, clock=lambda: 0)
    final = poller.poll([ARN_1])

    assert final[ARN_1]["status"] == "Failed"
    assert "boom" in final[ARN_1]["failureMessage"]


def test_poller_error_count_resets_after_a_successful_check():
    answers = iter([
        client_error("InternalServerException", "blip", "GetAsyncInvoke"),
        {"status": "InProgress"},
        client_error("InternalServerException", "blip", "GetAsyncInvoke"),
        {"status": "Completed"},
    ])

    def check(arn):
        answer = next(answers)
        if isinstance(answer, Exception):
            raise answer
        return answer

    poller = VideoJobPoller(check, interval=1, timeout=100, max_errors=2,
                            sleep=lambda seconds: None, clock=lambda: 0)
    final = poller.poll([ARN_1])

    assert final[ARN_1]["status"] == "Completed"


# Tracking jobs

def test_track_jobs_records_completion(jobs, sleeps):
    runtime = FakeBedrockRuntime()
    runtime.async_results[ARN_1] = [
        {"status": "InProgress"},
        {"status": "Completed", "outputDataConfig": {"s3OutputDataConfig": {"s3Uri": "s3://study-videos/a"}}},
    ]
    runtime.async_results[ARN_2] = [{"status": "Failed", "failureMessage": "content filtered"}]
    service = make_service(runtime, jobs, sleeps)

    job_id = service.create_tracking_job([ARN_1, ARN_2], user_email="student@example.com")
    assert jobs.get_job_status(job_id)["status"] == "processing"

    poller = VideoJobPoller(service.check_status, interval=1, timeout=100,
                            sleep=lambda seconds: None, clock=lambda: 0)
    service.track_jobs(job_id, [ARN_1, ARN_2], poller=poller)

    job = jobs.get_job_status(job_id)
    assert job["status"] == "completed"
    assert job["progress"] == "1/2 videos completed"
    assert job["videoUrls"] == [f"https://study-videos.s3.{BEDROCK_REGION}.amazonaws.com/a/output.mp4"]
    assert job["user_email"] == "student@example.com"


def test_track_jobs_without_completed_videos_is_error(jobs, sleeps):
    runtime = FakeBedrockRuntime()
    runtime.async_results[ARN_1] = [{"status": "Failed", "failureMessage": "nope"}]
    service = make_service(runtime, jobs, sleeps)

    job_id = service.create_tracking_job([ARN_1])
    poller = VideoJobPoller(service.check_status, interval=1, timeout=100,
                            sleep=lambda seconds: None, clock=lambda: 0)
    service.track_jobs(job_id, [ARN_1], poller=poller)

    job = jobs.get_job_status(job_id)
    assert job["status"] == "error"
    assert job["error"] == "No video generation job completed"
    assert job["videos"][ARN_1]["status"] == "Failed"
