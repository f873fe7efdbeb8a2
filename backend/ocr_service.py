# ocr_service.py
from __future__ import annotations
import logging
import os
from typing import Any, Dict, Optional, Tuple

import requests
from tencentcloud.common import credential
from tencentcloud.common.exception.tencent_cloud_sdk_exception import TencentCloudSDKException
from tencentcloud.ocr.v20181119 import models as tc_models
from tencentcloud.ocr.v20181119 import ocr_client as tc_ocr_client

from errors import ConfigurationError, InputError, UpstreamError

LOG = logging.getLogger("ocr")

DEFAULT_REGION = "ap-beijing"
SCENE = "doc"
LANGUAGE = "zh"
TIMEOUT = 30

MISSING_IMAGE_MSG = "缺少图片数据"
MISSING_CREDENTIALS_MSG = "OCR 服务配置错误"
OCR_FAILED_MSG = "OCR 处理失败"

# 1x1 transparent PNG, enough to validate credentials
PROBE_IMAGE_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

AUTH_HINTS = {
    "AuthFailure.SecretIdNotFound": "SecretId 不存在或无效",
    "AuthFailure.SignatureFailure": "SecretKey 不正确",
    "AuthFailure.SignatureExpire": "签名过期，请检查系统时间",
}


def strip_data_url(image: str) -> str:
    """Drop a `data:image/...;base64,` prefix if the browser sent one."""
    if image.startswith("data:") and "," in image:
        return image.split(",", 1)[1]
    return image


def _credentials() -> Tuple[str, str]:
    secret_id = os.getenv("TENCENT_SECRET_ID")
    secret_key = os.getenv("TENCENT_SECRET_KEY")
    if not secret_id or not secret_key:
        LOG.error("TENCENT_SECRET_ID / TENCENT_SECRET_KEY not configured")
        raise ConfigurationError(MISSING_CREDENTIALS_MSG)
    return secret_id, secret_key


def _general_basic_ocr(image_b64: str, region: str) -> Any:
    secret_id, secret_key = _credentials()
    client = tc_ocr_client.OcrClient(credential.Credential(secret_id, secret_key), region)
    req = tc_models.GeneralBasicOCRRequest()
    req.ImageBase64 = image_b64
    req.Scene = SCENE
    req.LanguageType = LANGUAGE
    return client.GeneralBasicOCR(req)


def _recognize_via_sdk(image_b64: str, region: str) -> str:
    try:
        resp = _general_basic_ocr(image_b64, region)
    except TencentCloudSDKException as e:
        LOG.error("Tencent OCR error %s: %s", e.get_code(), e.get_message())
        raise UpstreamError(OCR_FAILED_MSG, status_code=500, detail=e.get_code()) from e
    detections = resp.TextDetections or []
    return "\n".join(d.DetectedText for d in detections if d.DetectedText)


def _recognize_via_relay(image_b64: str, relay_url: str) -> str:
    try:
        r = requests.post(relay_url, json={"image": image_b64}, timeout=TIMEOUT)
        r.raise_for_status()
        data: Dict[str, Any] = r.json()
    except (requests.RequestException, ValueError) as e:
        LOG.error("OCR relay request failed: %s", e)
        raise UpstreamError(OCR_FAILED_MSG, status_code=500, detail=str(e)) from e
    if not isinstance(data, dict) or not data.get("success"):
        error = data.get("error") if isinstance(data, dict) else data
        LOG.error("OCR relay reported failure: %s", error)
        raise UpstreamError(OCR_FAILED_MSG, status_code=500, detail=str(error))
    return data.get("text") or ""


def recognize_text(image: Any, region: str = DEFAULT_REGION, relay_url: Optional[str] = None) -> str:
    """Run a base64 image through OCR and return the detected lines."""
    if not isinstance(image, str) or not image:
        raise InputError(MISSING_IMAGE_MSG)
    image_b64 = strip_data_url(image)
    LOG.info("OCR request: %d base64 chars, relay=%s", len(image_b64), bool(relay_url))
    if relay_url:
        return _recognize_via_relay(image_b64, relay_url)
    return _recognize_via_sdk(image_b64, region)


def check_credentials(region: str = DEFAULT_REGION) -> Tuple[bool, str]:
    """Send the probe image to the vendor and report whether the keys work."""
    try:
        resp = _general_basic_ocr(PROBE_IMAGE_BASE64, region)
    except ConfigurationError as e:
        return False, e.message
    except TencentCloudSDKException as e:
        code = e.get_code() or ""
        msg = f"{code}: {e.get_message()}"
        # the probe image has no text; anything but an auth failure means the keys were accepted
        if not code.startswith("AuthFailure"):
            return True, f"credentials OK ({msg})"
        hint = AUTH_HINTS.get(code)
        return False, f"{msg} ({hint})" if hint else msg
    found = len(resp.TextDetections or [])
    return True, f"credentials OK, {found} text detections"
