"""
Video Service

Everything video related:

- slide storyboards for the lightweight presentation player (AI with a
  rule-based fallback)
- shot scripts from Nova Pro or OpenAI
- Nova Reel text-to-video jobs started asynchronously on Bedrock, one per shot
- job status lookups and background tracking of a batch of jobs
"""

import logging
import math
import random
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from botocore.exceptions import BotoCoreError, ClientError
from openai import OpenAI, OpenAIError

from bedrock_client import AIGenerationError, BedrockService, bedrock_service, extract_json
from config import (
    BEDROCK_PRIMARY_MODEL,
    BEDROCK_REGION,
    NOVA_REEL_MODEL,
    OPENAI_API_KEY,
    OPENAI_SCRIPT_MODEL,
    VIDEO_FALLBACK_URL,
    VIDEO_POLL_INTERVAL_SECONDS,
    VIDEO_POLL_TIMEOUT_SECONDS,
    VIDEO_S3_BUCKET,
    VIDEO_SHOT_DELAY_SECONDS,
)
from job_manager import JobManager, job_manager
from text_heuristics import extract_main_topic, split_sentences
from video_job_poller import VideoJobPoller

logger = logging.getLogger(__name__)

NOVA_REEL_PROMPT_LIMIT = 512
NOVA_REEL_SHOT_SECONDS = 6
START_ATTEMPTS = 3
RETRY_WAIT_SECONDS = 5

STORYBOARD_PROMPT = """Please analyze the following text and create a video presentation structure.

Requirements:
- Create a compelling title for the presentation
- Break the content into 4-6 slides with appropriate titles
- Each slide should have engaging content
- Determine appropriate duration for each slide (3-8 seconds)
- Create a transcript combining all slide content
- Organize slides with types: 'title', 'content', 'conclusion'

Return as JSON:
{{
  "title": "Presentation Title",
  "slides": [
    {{"id": 1, "title": "Slide Title", "content": "Slide content text", "duration": 5, "type": "title"}}
  ],
  "totalDuration": 30,
  "transcript": "Full transcript text"
}}

Text to analyze:
{text}"""

SHOT_SCRIPT_PROMPT = """You are an expert video content creator and visual director specializing in creating highly engaging, visually stunning videos.

Video Style: {style}
{shot_rule}
1. Content Analysis: identify the key concepts, themes and visual metaphors, the specific objects,
   locations and scenarios mentioned, the emotional tone, and the target audience.

2. Visual Storytelling: for each shot provide a specific background environment (not a generic studio),
   concrete props, a detailed scene description, a purposeful camera movement, and lighting that matches
   the content.

Return as JSON:
{{
  "title": "Compelling Video Title",
  "duration": 30,
  "style": "{style}",
  "content_analysis": {{
    "key_themes": ["theme1", "theme2"],
    "visual_metaphors": ["metaphor1", "metaphor2"],
    "target_audience": "description",
    "emotional_tone": "tone description"
  }},
  "shots": [
    {{
      "prompt": "Detailed visual description with background, props, camera movement and scene details",
      "weight": 1.0,
      "description": "What happens in this shot",
      "background": "Specific background environment",
      "visual_elements": ["specific prop 1", "specific prop 2"],
      "camera_movement": "Specific camera technique",
      "lighting": "Specific lighting description"
    }}
  ],
  "transcript": "Natural flowing transcript"
}}

Text to analyze:
{text}"""


class PromptTooLongError(ValueError):
    """Raised when a Nova Reel prompt exceeds the model's character limit."""

    def __init__(self, length: int, limit: int = NOVA_REEL_PROMPT_LIMIT):
        self.length = length
        self.limit = limit
        super().__init__(f"Prompt must be {limit} characters or less. Your prompt is {length} characters.")


def generate_fallback_storyboard(text: str) -> Dict:
    """
    Slide storyboard without a model: a title slide, up to five content
    slides (one per sentence) and a closing slide.
    """
    sentences = split_sentences(text, 15)
    if not sentences:
        return {"title": "Empty Video", "slides": [], "totalDuration": 0, "transcript": ""}

    title = extract_main_topic(text, max_words=4, max_chars=40, default="Presentation")
    slides = [{"id": 1, "title": title, "content": "Welcome to this presentation", "duration": 3, "type": "title"}]

    for index, sentence in enumerate(sentences[:5]):
        words = sentence.split(' ')
        slides.append({
            "id": index + 2,
            "title": ' '.join(words[:4]),
            "content": sentence,
            "duration": max(3, min(8, math.ceil(len(words) / 3))),
            "type": "content",
        })

    slides.append({
        "id": len(slides) + 1,
        "title": "Thank You",
        "content": "Thank you for watching this presentation",
        "duration": 3,
        "type": "conclusion",
    })

    return {
        "title": title,
        "slides": slides,
        "totalDuration": sum(s["duration"] for s in slides),
        "transcript": '\n\n'.join(f"{s['title']}: {s['content']}" for s in slides),
    }


def normalize_ai_storyboard(data: Dict) -> Dict:
    if not isinstance(data, dict) or not isinstance(data.get("slides"), list) or not data["slides"]:
        raise AIGenerationError("AI response did not contain slides")

    slides = []
    for index, slide in enumerate(data["slides"]):
        slide = slide if isinstance(slide, dict) else {}
        slides.append({
            "id": index + 1,
            "title": slide.get("title") or f"Slide {index + 1}",
            "content": slide.get("content") or "",
            "duration": slide.get("duration") or 5,
            "type": slide.get("type") or "content",
        })

    return {
        "title": data.get("title") or slides[0]["title"],
        "slides": slides,
        "totalDuration": data.get("totalDuration") or sum(s["duration"] for s in slides),
        "transcript": data.get("transcript") or '\n\n'.join(f"{s['title']}: {s['content']}" for s in slides),
    }


def s3_uri_to_public_url(s3_uri: str, region: str = BEDROCK_REGION) -> Optional[str]:
    """Map an ``s3://bucket/prefix`` output location to the public URL of its output.mp4."""
    if not s3_uri:
        return None
    parsed = urlparse(s3_uri)
    if parsed.scheme != "s3" or not parsed.netloc:
        return None
    key = parsed.path.strip('/')
    prefix = f"{key}/" if key else ""
    return f"https://{parsed.netloc}.s3.{region}.amazonaws.com/{prefix}output.mp4"


def _is_throttled(error: Exception) -> bool:
    if isinstance(error, ClientError):
        if error.response.get("Error", {}).get("Code") in ("ThrottlingException", "TooManyRequestsException"):
            return True
    return "Too many requests" in str(error)


class VideoService:
    """Service for video storyboards and Nova Reel generation jobs"""

    def __init__(self, bedrock: Optional[BedrockService] = None, openai_client=None,
                 jobs: Optional[JobManager] = None, bucket: str = VIDEO_S3_BUCKET,
                 sleep: Callable[[float], None] = time.sleep,
                 shot_delay: float = VIDEO_SHOT_DELAY_SECONDS):
        self.bedrock = bedrock or bedrock_service
        self._openai_client = openai_client
        self.jobs = jobs or job_manager
        self.bucket = bucket
        self.sleep = sleep
        self.shot_delay = shot_delay

    @property
    def output_s3_uri(self) -> str:
        return f"s3://{self.bucket}/"

    @property
    def openai_client(self):
        if self._openai_client is None:
            if not OPENAI_API_KEY:
                raise AIGenerationError("OPENAI_API_KEY is not configured")
            self._openai_client = OpenAI(api_key=OPENAI_API_KEY)
        return self._openai_client

    # ---------------------- Storyboards ----------------------

    def generate_storyboard(self, text: str) -> Dict:
        try:
            storyboard = self.bedrock.invoke_with_fallback(
                STORYBOARD_PROMPT.format(text=text),
                max_tokens=1500,
                temperature=0.3,
                parse=lambda raw: normalize_ai_storyboard(extract_json(raw, "object")),
            )
            logger.info("✅ AI video generation successful")
            return storyboard
        except AIGenerationError as e:
            logger.warning(f"⚠️ AI video generation failed, using fallback: {e}")
            return generate_fallback_storyboard(text)

    # ---------------------- Shot scripts ----------------------

    def generate_nova_pro_video(self, text: str, style: str = "educational") -> Dict:
        """Shot script from Nova Pro, paired with the placeholder render URL."""
        prompt = SHOT_SCRIPT_PROMPT.format(style=style, shot_rule="", text=text)
        try:
            raw = self.bedrock.invoke(BEDROCK_PRIMARY_MODEL, prompt, max_tokens=2000, temperature=0.7)
        except (ClientError, BotoCoreError) as e:
            raise AIGenerationError(f"Nova Pro request failed: {e}") from e
        script = extract_json(raw, "object")
        logger.info("✅ Nova Pro script generation successful")

        return {
            "title": script.get("title"),
            "videoUrl": VIDEO_FALLBACK_URL,
            "duration": script.get("duration"),
            "type": "nova_pro_video",
            "transcript": script.get("transcript"),
            "slides": [],
            "style": script.get("style") or style,
            "shots": script.get("shots") or [],
            "content_analysis": script.get("content_analysis"),
        }

    def generate_openai_script(self, text: str, style: str = "educational") -> Dict:
        prompt = SHOT_SCRIPT_PROMPT.format(
            style=style, shot_rule="\n0. Create exactly 3 shots.\n", text=text
        )
        try:
            response = self.openai_client.chat.completions.create(
                model=OPENAI_SCRIPT_MODEL,
                messages=[
                    {
                        "role": "system",
                        "content": "You are an expert video content analyst and script writer specializing in "
                                   "creating engaging, professional video content. Always respond with valid JSON."
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
                max_tokens=2000,
            )
        except OpenAIError as e:
            raise AIGenerationError(f"OpenAI script generation failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIGenerationError("No response from OpenAI")

        script = extract_json(content, "object")
        if not isinstance(script.get("shots"), list):
            raise AIGenerationError("OpenAI script did not contain shots")
        logger.info(f"✅ OpenAI script generation successful, {len(script['shots'])} shots")
        return script

    # ---------------------- Nova Reel jobs ----------------------

    def build_reel_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "taskType": "TEXT_VIDEO",
            "textToVideoParams": {"text": prompt},
            "videoGenerationConfig": {
                "durationSeconds": NOVA_REEL_SHOT_SECONDS,
                "fps": 24,
                "dimension": "1280x720",
                "seed": random.randint(0, 999999),
            },
        }

    def start_reel_job(self, prompt: str, s3_uri: str) -> str:
        """Start one Nova Reel job, retrying when Bedrock throttles us."""
        model_input = self.build_reel_request(prompt)
        for attempt in range(1, START_ATTEMPTS + 1):
            try:
                return self.bedrock.start_async_invoke(NOVA_REEL_MODEL, model_input, s3_uri)
            except ClientError as e:
                if not _is_throttled(e) or attempt == START_ATTEMPTS:
                    raise
                wait = attempt * RETRY_WAIT_SECONDS
                logger.info(f"⏳ Rate limited. Waiting {wait}s before retry ({START_ATTEMPTS - attempt} retries left)")
                self.sleep(wait)

    def start_direct_video(self, prompt: str) -> Dict:
        if len(prompt) > NOVA_REEL_PROMPT_LIMIT:
            raise PromptTooLongError(len(prompt))

        invocation_arn = self.start_reel_job(prompt, self.output_s3_uri)
        logger.info(f"✅ Direct Nova Reel job started: {invocation_arn}")
        return {
            "message": "🎥 Video generation job started successfully!",
            "invocationArn": invocation_arn,
            "status": "InProgress",
            "estimatedTime": "1-3 minutes",
            "s3Bucket": self.bucket,
            "outputUri": self.output_s3_uri,
        }

    def generate_openai_videos(self, text: str, style: str = "educational") -> Dict:
        """
        Script the video with OpenAI, then start one Nova Reel job per shot.

        Shots that fail to start are reported in the result instead of
        aborting the whole batch.
        """
        script = self.generate_openai_script(text, style)
        shots = script["shots"]
        video_jobs: List[Dict] = []
        failed_jobs: List[Dict] = []

        for index, shot in enumerate(shots):
            shot = shot if isinstance(shot, dict) else {"prompt": str(shot)}
            shot_id = f"shot-{index + 1}"
            prompt = str(shot.get("prompt") or shot.get("description") or "")
            if len(prompt) > NOVA_REEL_PROMPT_LIMIT:
                logger.info(f"⚠️ Shot {index + 1} prompt truncated from {len(prompt)} to {NOVA_REEL_PROMPT_LIMIT} characters")
                shot["originalLength"] = len(prompt)
                prompt = prompt[:NOVA_REEL_PROMPT_LIMIT]
                shot["truncatedPrompt"] = prompt

            s3_path = f"{self.output_s3_uri}{shot_id}/"
            try:
                invocation_arn = self.start_reel_job(prompt, s3_path)
                video_jobs.append({
                    "shotIndex": index,
                    "shotId": shot_id,
                    "title": shot.get("description") or f"Shot {index + 1}",
                    "prompt": prompt,
                    "invocationArn": invocation_arn,
                    "status": "InProgress",
                    "s3Path": s3_path,
                    "s3Url": None,
                    "shot": shot,
                })
                logger.info(f"✅ Shot {index + 1} job started: {invocation_arn}")
            except (ClientError, BotoCoreError) as e:
                logger.error(f"❌ Failed to start job for shot {index + 1}: {e}")
                failed_jobs.append({"shotIndex": index, "shotId": shot_id, "error": str(e), "shot": shot})

            if index < len(shots) - 1 and self.shot_delay > 0:
                self.sleep(self.shot_delay)

        logger.info(f"🎯 Started {len(video_jobs)} video generation jobs ({len(failed_jobs)} failed)")
        return {
            "title": script.get("title"),
            "duration": script.get("duration"),
            "type": "openai_video",
            "transcript": script.get("transcript"),
            "style": script.get("style") or style,
            "content_analysis": script.get("content_analysis"),
            "totalShots": len(shots),
            "successfulJobs": len(video_jobs),
            "failedJobs": len(failed_jobs),
            "videoJobs": video_jobs,
            "failedJobDetails": failed_jobs,
            "estimatedTime": "1-3 minutes per video",
            "s3Bucket": self.bucket,
        }

    # ---------------------- Status ----------------------

    def check_status(self, invocation_arn: str) -> Dict:
        response = self.bedrock.get_async_invoke(invocation_arn)
        status = response.get("status")
        s3_uri = (response.get("outputDataConfig") or {}).get("s3OutputDataConfig", {}).get("s3Uri")
        completed = status == "Completed" and bool(s3_uri)
        return {
            "status": status,
            "invocationArn": invocation_arn,
            "outputLocation": f"{s3_uri.rstrip('/')}/output.mp4" if completed else None,
            "s3Url": s3_uri_to_public_url(s3_uri) if completed else None,
            "failureMessage": response.get("failureMessage"),
        }

    def create_tracking_job(self, invocation_arns: List[str], user_email: Optional[str] = None) -> str:
        job_id = self.jobs.create_job(user_email=user_email, action_type="VIDEO_GENERATION")
        self.jobs.update_job_status(
            job_id, "processing", "Waiting for video generation jobs...",
            videos={arn: {"invocationArn": arn, "status": "InProgress"} for arn in invocation_arns},
        )
        return job_id

    def track_jobs(self, job_id: str, invocation_arns: List[str],
                   poller: Optional[VideoJobPoller] = None) -> Dict[str, Dict]:
        """
        Poll a batch of Nova Reel jobs until they finish and mirror every
        status change into the job record.
        """
        poller = poller or VideoJobPoller(
            self.check_status,
            interval=VIDEO_POLL_INTERVAL_SECONDS,
            timeout=VIDEO_POLL_TIMEOUT_SECONDS,
            sleep=self.sleep,
        )
        videos: Dict[str, Dict] = {arn: {"invocationArn": arn, "status": "InProgress"} for arn in invocation_arns}

        def on_update(arn: str, status: Dict) -> None:
            videos[arn] = status
            done = sum(1 for v in videos.values() if v.get("status") in VideoJobPoller.TERMINAL_STATUSES)
            self.jobs.update_job_status(job_id, "processing", f"{done}/{len(videos)} videos finished", videos=videos)

        final = poller.poll(invocation_arns, on_update=on_update)
        completed = [s for s in final.values() if s.get("status") == "Completed"]

        if completed:
            self.jobs.set_job_completed(job_id, {
                "progress": f"{len(completed)}/{len(final)} videos completed",
                "videos": final,
                "videoUrls": [s["s3Url"] for s in completed if s.get("s3Url")],
            })
        else:
            self.jobs.set_job_error(job_id, "No video generation job completed")
            self.jobs.update_job_status(job_id, "error", videos=final)
        return final


# Global instance
video_service = VideoService()
