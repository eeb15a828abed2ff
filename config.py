import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
LOG_FILE = os.path.join(BASE_DIR, "launch.log")
DRAFT_FILE = os.getenv("ASSESSMENT_DRAFT_FILE", os.path.join(BASE_DIR, ".assessment_drafts.json"))

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))
API_BASE_URL = os.getenv("ASSESSMENT_API_URL", f"http://{DEFAULT_HOST}:{DEFAULT_PORT}")

# 재개(resume) 설정
RESUME_TIMEOUT_SECONDS = float(os.getenv("RESUME_TIMEOUT_SECONDS", "5.0"))   # 초과 시 fresh 시작
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15.0"))

# 드래프트 저장소 설정
DRAFT_NAMESPACE = "ops_assessment"   # 이 접두사 아래의 키만 clear_all 대상

# 서버 세션 설정
SESSION_TTL = 3600 * 24 * 7   # 7일 (재개 가능 기간)

# 진단 구성
CHUNKS_PER_VERSION = {"quick": 3, "deep": 10}
QUESTIONS_PER_CHUNK = 5
UPGRADE_TOTAL_CHUNKS = 7    # quick 15문항 + deep 35문항 = 전체 deep 분량
