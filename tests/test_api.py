"""
tests/test_api.py
==================
HTTP API Tests — VoiceBridge

Runs the FastAPI app in-process with TestClient. The orchestrator and the
poller are built around a MagicMock Sarvam client via dependency_overrides.

Tests verify:
    1. Request validation (missing audio / language / job parameters)
    2. Fast path and batch path response shapes
    3. Direct-upload bypass actions
    4. Job status checks and the wait endpoint
    5. Error mapping ({error, details} with status 500)
"""

import base64
import os
import random
import sys
import unittest
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.api.routes import app, get_orchestrator, get_poller, get_settings
from src.errors import ConfigurationError, RemoteServiceError
from src.job_poller import JobPoller
from src.models import JobState, JobStatus
from src.pipeline import PipelineOrchestrator
from src.sarvam.speakers import SpeakerSelector
from tests.helpers import make_client, make_wav, pipeline_settings

JOB_QUERY = {"jobId": "job-123", "targetLanguage": "ta-IN", "fileName": "talk.mp3"}


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.sarvam = make_client()
        settings = pipeline_settings()
        self.orchestrator = PipelineOrchestrator(
            self.sarvam, settings, speaker_selector=SpeakerSelector(random.Random(5))
        )
        self.sleep = AsyncMock()
        self.poller = JobPoller(self.sarvam, settings, sleep=self.sleep)

        app.dependency_overrides[get_orchestrator] = lambda: self.orchestrator
        app.dependency_overrides[get_poller] = lambda: self.poller
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()


class TestTranslateAudio(ApiTestCase):

    def test_fast_path_response(self):
        resp = self.client.post(
            "/api/translate-audio",
            files={"audio": ("clip.wav", make_wav(), "audio/wav")},
            data={"targetLanguage": "ta-IN"},
        )

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["originalText"], "नमस्ते")
        self.assertEqual(body["translatedText"], "வணக்கம்")
        self.assertTrue(base64.b64decode(body["audioBase64"]).startswith(b"RIFF"))
        self.assertNotIn("warning", body)

        audio = self.sarvam.transcribe.call_args.args[0]
        self.assertEqual(audio.file_name, "clip.wav")
        self.assertEqual(audio.mime_type, "audio/wav")

    def test_batch_path_response(self):
        resp = self.client.post(
            "/api/translate-audio",
            files={"audio": ("talk.mp3", b"\x00" * (2 * 1024 * 1024), "audio/mpeg")},
            data={"targetLanguage": "ta-IN"},
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            {
                "jobId": "job-123",
                "fileName": "talk.mp3",
                "status": "processing",
                "message": "Long audio detected. Processing started...",
            },
        )
        self.sarvam.transcribe.assert_not_called()

    def test_missing_audio(self):
        resp = self.client.post("/api/translate-audio", data={"targetLanguage": "ta-IN"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "No audio file provided")

    def test_missing_target_language(self):
        resp = self.client.post(
            "/api/translate-audio",
            files={"audio": ("clip.wav", make_wav(), "audio/wav")},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "No target language provided")

    def test_unsupported_target_language(self):
        resp = self.client.post(
            "/api/translate-audio",
            files={"audio": ("clip.wav", make_wav(), "audio/wav")},
            data={"targetLanguage": "fr-FR"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("fr-FR", resp.json()["detail"])

    def test_pipeline_failure_maps_to_500(self):
        self.sarvam.transcribe.side_effect = RemoteServiceError("Speech-to-Text", 500, "boom")
        resp = self.client.post(
            "/api/translate-audio",
            files={"audio": ("clip.wav", make_wav(), "audio/wav")},
            data={"targetLanguage": "ta-IN"},
        )

        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertEqual(body["error"], "Translation failed")
        self.assertIn("Speech-to-Text failed: 500", body["details"])


class TestUploadActions(ApiTestCase):

    def test_initiate(self):
        resp = self.client.post(
            "/api/translate-audio", json={"action": "initiate", "fileName": "big.wav"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            {"jobId": "job-123", "uploadUrl": "https://blob.example.net/in/audio.wav?sig=abc"},
        )
        self.sarvam.create_batch_job.assert_called_once_with("big.wav")

    def test_start(self):
        resp = self.client.post(
            "/api/translate-audio",
            json={"action": "start", "jobId": "job-123", "fileName": "big.wav"},
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["status"], "processing")
        self.assertEqual(body["jobId"], "job-123")
        self.sarvam.start_batch_job.assert_called_once_with("job-123")

    def test_unknown_action(self):
        resp = self.client.post("/api/translate-audio", json={"action": "delete"})
        self.assertEqual(resp.status_code, 400)

    def test_initiate_without_file_name(self):
        resp = self.client.post("/api/translate-audio", json={"action": "initiate"})
        self.assertEqual(resp.status_code, 400)


class TestCheckJob(ApiTestCase):

    def test_processing(self):
        self.sarvam.poll_job_status.return_value = JobStatus(
            job_id="job-123", state=JobState.RUNNING, raw_state="Running"
        )
        resp = self.client.get("/api/check-job", params=JOB_QUERY)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "processing", "job_state": "Running"})

    def test_completed(self):
        self.sarvam.poll_job_status.return_value = JobStatus(
            job_id="job-123", state=JobState.COMPLETED, raw_state="Completed"
        )
        self.sarvam.get_result_download_targets.return_value = ["https://blob/out/talk.json"]
        self.sarvam.fetch_result.return_value = {"transcript": "लंबी बातचीत"}

        resp = self.client.get("/api/check-job", params=JOB_QUERY)
        body = resp.json()
        self.assertEqual(body["status"], "completed")
        self.assertEqual(body["originalText"], "लंबी बातचीत")
        self.assertIn("audioBase64", body)

    def test_failed(self):
        self.sarvam.poll_job_status.return_value = JobStatus(
            job_id="job-123", state=JobState.FAILED, raw_state="Failed", error="Corrupt file"
        )
        resp = self.client.get("/api/check-job", params=JOB_QUERY)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "failed")
        self.assertEqual(resp.json()["error"], "Batch job job-123 failed")
        self.assertEqual(resp.json()["details"], "Corrupt file")

    def test_missing_parameters(self):
        resp = self.client.get("/api/check-job", params={"jobId": "job-123"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Missing jobId, targetLanguage, or fileName")

    def test_status_query_failure(self):
        self.sarvam.poll_job_status.side_effect = RemoteServiceError("Job status", 502, "")
        resp = self.client.get("/api/check-job", params=JOB_QUERY)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "Status check failed")

    def test_wait_endpoint(self):
        self.sarvam.poll_job_status.side_effect = [
            JobStatus(job_id="job-123", state=JobState.RUNNING, raw_state="Running"),
            JobStatus(job_id="job-123", state=JobState.FAILED, raw_state="Failed", error="x"),
        ]
        resp = self.client.get("/api/check-job/wait", params=JOB_QUERY)
        self.assertEqual(resp.json()["status"], "failed")
        self.sleep.assert_awaited_once_with(10.0)


class TestTextToSpeechRoute(ApiTestCase):

    def test_tts(self):
        resp = self.client.post("/api/tts", json={"text": "வணக்கம்", "targetLanguage": "ta-IN"})
        self.assertEqual(resp.status_code, 200)
        audio = base64.b64decode(resp.json()["audioBase64"])
        self.assertTrue(audio.startswith(b"RIFF"))

    def test_tts_missing_fields(self):
        resp = self.client.post("/api/tts", json={"text": "வணக்கம்"})
        self.assertEqual(resp.status_code, 400)

    def test_tts_failure(self):
        self.sarvam.synthesize.side_effect = RemoteServiceError("Text-to-Speech", 500, "boom")
        resp = self.client.post("/api/tts", json={"text": "வணக்கம்", "targetLanguage": "ta-IN"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "Failed to generate TTS audio")


class TestMisc(ApiTestCase):

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_languages(self):
        codes = [item["code"] for item in self.client.get("/api/languages").json()["languages"]]
        self.assertEqual(len(codes), 11)
        self.assertIn("od-IN", codes)

    def test_missing_api_key_is_reported(self):
        app.dependency_overrides.clear()

        def no_key():
            raise ConfigurationError("SARVAM_API_KEY is not configured")

        app.dependency_overrides[get_settings] = no_key
        resp = self.client.get("/api/check-job", params=JOB_QUERY)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "SARVAM_API_KEY is not configured")


if __name__ == "__main__":
    unittest.main()
