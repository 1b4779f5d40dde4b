import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
DATA_DIR = os.path.join(BASE_DIR, "personality_quiz", "data")
QUESTIONS_FILE = os.getenv("QUIZ_QUESTIONS_FILE", os.path.join(DATA_DIR, "questions.json"))
TYPES_FILE = os.getenv("QUIZ_TYPES_FILE", os.path.join(DATA_DIR, "personality_types.json"))
LOG_FILE = os.path.join(BASE_DIR, "launch.log")

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 검사 설정
QUESTIONS_PER_PAGE = 5  # 한 페이지에 표시할 문항 수
MIN_SCORE = 1
MAX_SCORE = 10

# 세션 설정
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))            # 진행 중 응시 1시간
RESULT_TTL = int(os.getenv("RESULT_TTL", str(7 * 24 * 3600)))  # 결과 공유 링크 7일
CLEANUP_INTERVAL = 300                                          # 만료 세션 정리 주기 (초)

# 원격 백엔드 설정 (quiz_client)
BACKEND_URL = os.getenv("QUIZ_BACKEND_URL", f"http://{DEFAULT_HOST}:{DEFAULT_PORT}")
REQUEST_TIMEOUT = float(os.getenv("QUIZ_REQUEST_TIMEOUT", "15.0"))

# 응시자 정보
ALLOWED_GENDERS = ("male", "female")

# 나이대 → 대표 나이
AGE_RANGE_REPRESENTATIVE = {
    "under18": 15,
    "19-25": 22,
    "26-50": 38,
    "over51": 55,
}
