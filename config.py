import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
STATIC_DIR = os.path.join(BASE_DIR, "static")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")
DATA_FILE = os.getenv("CBT_DATA_FILE", os.path.join(BASE_DIR, "cbt_store.json"))

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))
DEFAULT_TIMEOUT = 15.0

# 감독(전체 화면) 설정
MAX_EXITS = int(os.getenv("MAX_EXITS", "3"))   # 4번째 이탈 시 자동 제출
EXIT_COUNT_KEY_PREFIX = "fullscreenExitCount_"

# 타이머 설정
TICK_INTERVAL = float(os.getenv("TICK_INTERVAL", "1.0"))   # 초 단위
LOW_TIME_SECONDS = 300                                     # 5분 미만이면 경고 표시

# 채점 설정
MARKS_PER_QUESTION = 10
MAX_MARKS = 10
MIN_MARKS = 0

# 제출 후 이동 경로
DASHBOARD_PATH = "/student/dashboard"
