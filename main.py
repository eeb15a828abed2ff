"""
main.py — 리더십 진단 앱 진입점

1) 진단 세션 API(FastAPI)를 빈 포트에 띄우고
2) 그 주소를 넘겨 Streamlit UI를 실행한 뒤
3) 브라우저로 진단 페이지를 연다.
"""

import os
import socket
import subprocess
import sys
import threading
import time
import logging
import traceback
import webbrowser

from config import BASE_DIR, LOG_FILE, DEFAULT_HOST

# ── 로깅 설정 ────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # 로그 파일 점유 시 콘솔 출력만 사용
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

# ── 서버 및 네트워크 유틸 ───────────────────────────────────────────────────

def _find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((DEFAULT_HOST, 0))
        return s.getsockname()[1]

def _wait_for_server(port: int, timeout: float = 15.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False

def _start_api_server(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Uvicorn 서버 시작 - Port: {port}")
        app = create_app()
        uvicorn.run(app, host=DEFAULT_HOST, port=port, log_level="error")
    except Exception:
        logger.error(f"서버 오류 발생:\n{traceback.format_exc()}")

def _start_ui(ui_port: int, api_port: int) -> subprocess.Popen:
    env = dict(os.environ, ASSESSMENT_API_URL=f"http://{DEFAULT_HOST}:{api_port}")
    cmd = [
        sys.executable, "-m", "streamlit", "run",
        os.path.join(BASE_DIR, "streamlit_app.py"),
        "--server.address", DEFAULT_HOST,
        "--server.port", str(ui_port),
        "--server.headless", "true",
    ]
    logger.info(f"Streamlit UI 시작 - Port: {ui_port}")
    return subprocess.Popen(cmd, env=env, cwd=BASE_DIR)

# ── 메인 실행 ────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("=== Leadership Assessment Started ===")
    os.chdir(BASE_DIR)

    api_port = _find_free_port()
    server_thread = threading.Thread(target=_start_api_server, args=(api_port,), daemon=True)
    server_thread.start()

    if not _wait_for_server(api_port):
        logger.error("API 서버 시작 제한 시간을 초과했습니다.")
        sys.exit(1)

    ui_port = _find_free_port()
    ui = _start_ui(ui_port, api_port)
    if _wait_for_server(ui_port, timeout=30.0):
        logger.info("서버 준비 완료. 브라우저를 엽니다.")
        webbrowser.open(f"http://{DEFAULT_HOST}:{ui_port}/?version=quick")
    else:
        logger.error("UI 서버 시작 제한 시간을 초과했습니다.")

    try:
        ui.wait()
    except KeyboardInterrupt:
        logger.info("사용자에 의해 종료되었습니다.")
        ui.terminate()
