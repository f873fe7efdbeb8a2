import io
import json
from urllib.parse import unquote

import pytest

import ocr_service

DELIMITED_REPLY = (
    "问题1：介绍一下你的支付项目\n参考答案：\n1. 项目背景\n补充说明\n2. 个人贡献\n\n"
    "问题2：如何保证接口稳定性\n参考答案：\n1. 限流熔断"
)


def test_home_renders_form(client):
    resp = client.get("/")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "AI 面试助手" in body
    assert 'name="resume_text"' in body
    assert "variant-classic" in body


def test_security_headers(client):
    resp = client.get("/")
    assert "default-src 'self'" in resp.headers["Content-Security-Policy"]
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_pdf_extractor_is_registered_once(flask_app):
    from parsers import PdfTextExtractor

    assert isinstance(flask_app.extensions["pdf_extractor"], PdfTextExtractor)


def test_generate_api(client, fake_llm):
    fake_llm.content = DELIMITED_REPLY
    resp = client.post(
        "/api/interview/generate",
        json={"resume_text": "五年后端经验", "job_description": "高级后端工程师"},
        headers={"Origin": "https://helper.example.org"},
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["source"] == "text"
    assert len(data["qa_pairs"]) == 10
    assert data["qa_pairs"][1] == {"question": "如何保证接口稳定性", "answer": "1. 限流熔断"}
    call = fake_llm.calls[0]
    assert call["model"] == "google/gemini-2.5-flash"
    assert call["extra_headers"]["HTTP-Referer"] == "https://helper.example.org"


def test_generate_api_json_style(client, fake_llm):
    fake_llm.content = '[{"question": "Q1", "answer": "1. A1"}]'
    resp = client.post("/api/interview/generate", json={"job_description": "JD only", "style": "json"})
    assert resp.status_code == 200
    assert resp.get_json()["source"] == "json"


def test_generate_api_requires_inputs(client, fake_llm):
    resp = client.post("/api/interview/generate", json={"resume_text": "only resume"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "请先输入简历内容和岗位描述"}
    assert fake_llm.calls == []


def test_generate_api_unparseable_reply(client, fake_llm):
    fake_llm.content = "no questions here"
    resp = client.post("/api/interview/generate", json={"resume_text": "r", "job_description": "j"})
    assert resp.status_code == 502
    assert resp.get_json()["error"] == "无法解析API返回的JSON格式"


def test_chat_proxy_passthrough(client, fake_llm):
    fake_llm.content = "pong"
    resp = client.post(
        "/api/chat",
        json={"model": "google/gemini-2.5-flash", "messages": [{"role": "user", "content": "ping"}],
              "max_tokens": 10, "temperature": 0.2},
    )
    assert resp.status_code == 200
    assert resp.get_json()["choices"][0]["message"]["content"] == "pong"
    assert fake_llm.calls[0]["max_tokens"] == 10


def test_chat_proxy_requires_messages(client, fake_llm):
    assert client.post("/api/chat", json={"model": "m"}).status_code == 400


def test_chat_proxy_missing_key(client, monkeypatch):
    import llm_client

    monkeypatch.setattr(llm_client, "_client", None)
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "API 密钥未配置"}


def test_ocr_api(client, monkeypatch):
    monkeypatch.setattr(ocr_service, "_general_basic_ocr", lambda image_b64, region: type(
        "Resp", (), {"TextDetections": [type("D", (), {"DetectedText": "招聘后端"})()]})())
    resp = client.post("/api/ocr", json={"image": "data:image/png;base64,QUJD"})
    assert resp.status_code == 200
    assert resp.get_json() == {"text": "招聘后端"}


def test_ocr_api_missing_image(client):
    resp = client.post("/api/ocr", json={})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "缺少图片数据"}


@pytest.mark.parametrize("image", [123, ["QUJD"], {"data": "QUJD"}])
def test_ocr_api_image_must_be_text(client, image):
    resp = client.post("/api/ocr", json={"image": image})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "缺少图片数据"}


@pytest.mark.parametrize("path", ["/api/chat", "/api/ocr", "/api/interview/generate", "/api/interview/export"])
@pytest.mark.parametrize("body", [[1], "text", 42])
def test_json_body_must_be_an_object(client, fake_llm, path, body):
    resp = client.post(path, json=body)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "request body must be a JSON object"}
    assert fake_llm.calls == []


def test_generate_api_rejects_non_text_fields(client, fake_llm):
    resp = client.post("/api/interview/generate", json={"resume_text": ["r"], "job_description": "j"})
    assert resp.status_code == 400
    assert fake_llm.calls == []


def test_resume_extract_txt(client):
    data = {"file": (io.BytesIO("张三 Python".encode("utf-8")), "cv.txt", "text/plain")}
    resp = client.post("/api/resume/extract", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    assert resp.get_json() == {"text": "张三 Python"}


def test_resume_extract_broken_pdf(client):
    data = {"file": (io.BytesIO(b"not a pdf"), "cv.pdf", "application/pdf")}
    resp = client.post("/api/resume/extract", data=data, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "PDF文件解析失败，请确保文件格式正确"


def test_resume_extract_requires_file(client):
    assert client.post("/api/resume/extract", data={}, content_type="multipart/form-data").status_code == 400


@pytest.mark.parametrize("as_form", [False, True])
def test_export_download(client, as_form):
    pairs = [{"question": "Q1", "answer": "1. A\nmore"}]
    if as_form:
        resp = client.post("/api/interview/export", data={"qa_pairs": json.dumps(pairs)})
    else:
        resp = client.post("/api/interview/export", json={"qa_pairs": pairs})
    assert resp.status_code == 200
    assert resp.mimetype == "text/plain"
    assert "面试题目和答案.txt" in unquote(resp.headers["Content-Disposition"])
    assert resp.get_data(as_text=True) == "问题：Q1\n\n参考答案：\n1. A\n    more"


def test_export_rejects_bad_payload(client):
    assert client.post("/api/interview/export", json={"qa_pairs": "nope"}).status_code == 400
    assert client.post("/api/interview/export", data={"qa_pairs": "{broken"}).status_code == 400


def test_form_flow_renders_questions(client, fake_llm):
    fake_llm.content = DELIMITED_REPLY
    resp = client.post("/", data={"resume_text": "五年后端经验", "job_description": "高级后端工程师"})
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "介绍一下你的支付项目" in body
    assert '<p class="detail">补充说明</p>' in body
    assert "下载题目" in body


def test_form_flow_with_uploads(client, fake_llm, monkeypatch):
    fake_llm.content = DELIMITED_REPLY
    monkeypatch.setattr(ocr_service, "_general_basic_ocr", lambda image_b64, region: type(
        "Resp", (), {"TextDetections": [type("D", (), {"DetectedText": "图片里的岗位描述"})()]})())
    data = {
        "resume_text": "",
        "job_description": "",
        "resume_file": (io.BytesIO("上传的简历".encode("utf-8")), "cv.txt", "text/plain"),
        "jd_image": (io.BytesIO(b"\x89PNG fake"), "jd.png", "image/png"),
    }
    resp = client.post("/", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "图片里的岗位描述" in body
    user_message = fake_llm.calls[0]["messages"][1]["content"]
    assert "上传的简历" in user_message
    assert "图片里的岗位描述" in user_message


def test_form_flow_shows_error_banner(client, fake_llm):
    resp = client.post("/", data={"resume_text": "", "job_description": "JD"})
    assert resp.status_code == 400
    assert "请先输入简历内容和岗位描述" in resp.get_data(as_text=True)
    assert fake_llm.calls == []


def test_compact_variant(client, fake_llm, flask_app, monkeypatch):
    monkeypatch.setitem(flask_app.config, "UI_VARIANT", "compact")
    fake_llm.content = "问题1：Q\n参考答案：\n思路：**1. 要点**"
    resp = client.post("/", data={"resume_text": "r", "job_description": "j"})
    body = resp.get_data(as_text=True)
    assert "variant-compact" in body
    assert '<p class="point">1. 要点</p>' in body
