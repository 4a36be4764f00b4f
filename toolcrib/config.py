# toolcrib/config.py
from __future__ import annotations

import os
from pathlib import Path

# ----------------------------
# Project structure
# ----------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent

DATA_DIR = os.environ.get("TOOLCRIB_DATA_DIR") or str(PROJECT_ROOT / "data")
LOGS_DIR = str(PROJECT_ROOT / "logs")
UPLOADS_DIR = str(Path(DATA_DIR) / "uploads")

# Logs
APP_LOG_FILE = str(Path(LOGS_DIR) / "toolcrib.log")

# ----------------------------
# Data files
# ----------------------------
DB_PATH = str(Path(DATA_DIR) / "toolcrib.db")
SETTINGS_FILE = str(Path(DATA_DIR) / "settings.json")
SETTINGS_HISTORY_FILE = str(Path(DATA_DIR) / "settings_history.json")

SETTINGS_VERSION = "1.0.0"
SETTINGS_HISTORY_LIMIT = 100

# Minimum seconds between refetches triggered by change notifications
REFETCH_MIN_INTERVAL = 3.0

# ----------------------------
# Equipment status values (stored verbatim)
# ----------------------------
STATUS_RUNNING = "가동중"
STATUS_MAINTENANCE = "점검중"
STATUS_SETUP = "셋업중"
EQUIPMENT_STATUSES = [STATUS_RUNNING, STATUS_MAINTENANCE, STATUS_SETUP]

# ----------------------------
# Hardcoded allow-list fallbacks (used when settings lists are empty)
# ----------------------------
FALLBACK_MODELS = ["PA1", "PA2", "PS", "B7", "Q7"]
FALLBACK_PROCESSES = ["CNC1", "CNC2", "CNC2-1"]
FALLBACK_CATEGORIES = ["FLAT", "BALL", "T-CUT", "C-CUT", "REAMER", "DRILL"]
FALLBACK_SUPPLIERS = ["KORLOY", "SANDVIK", "ISCAR", "MITSUBISHI", "KENNAMETAL", "TUNGALOY"]
FALLBACK_LOCATIONS = ["A동", "B동"]
FALLBACK_CHANGE_REASONS = ["수명완료", "파손", "마모", "예방교체", "모델변경", "추가SETUP", "기타"]
QUALITY_GRADES = ["A+", "A", "B+", "B", "C"]

DEFAULT_TOOL_LIFE = 2000

# ----------------------------
# DEFAULT SETTINGS (bootstrap writes this to SETTINGS_FILE)
# ----------------------------
DEFAULT_SETTINGS = {
    "system": {
        "language": "ko",
        "currency": "VND",
        "timezone": "Asia/Ho_Chi_Minh",
        "dateFormat": "YYYY-MM-DD",
        "itemsPerPage": 20,
        "sessionTimeout": 480,
    },
    "equipment": {
        "totalCount": 800,
        "locations": list(FALLBACK_LOCATIONS),
        "statuses": [
            {"code": STATUS_RUNNING, "name": "가동중", "color": "green"},
            {"code": STATUS_MAINTENANCE, "name": "점검중", "color": "red"},
            {"code": STATUS_SETUP, "name": "셋업중", "color": "purple"},
        ],
        "models": list(FALLBACK_MODELS),
        "processes": list(FALLBACK_PROCESSES),
        "toolPositionCount": 21,
    },
    "inventory": {
        "categories": list(FALLBACK_CATEGORIES),
        "suppliers": list(FALLBACK_SUPPLIERS),
        "stockThresholds": {
            "criticalPercent": 20,
            "lowPercent": 50,
        },
        "defaultValues": {
            "minStock": 20,
            "maxStock": 100,
            "standardLife": DEFAULT_TOOL_LIFE,
        },
    },
    "toolChanges": {
        "reasons": list(FALLBACK_CHANGE_REASONS),
        "defaultReason": "수명완료",
        "tNumberRange": {"min": 1, "max": 21},
        "lifeThresholds": {"warning": 80, "critical": 95},
    },
    "organization": {
        "shifts": ["A", "B"],
    },
    "ui": {
        "theme": "light",
        "dashboard": {"refreshInterval": 30},
    },
}

SETTINGS_CATEGORIES = list(DEFAULT_SETTINGS.keys())

# ----------------------------
# Workbook headers
# ----------------------------
CAM_SHEET_HEADERS = [
    "Model", "Process", "CAM Version", "T Number",
    "Endmill Code", "Category", "Endmill Name", "Tool Life",
]
CAM_SHEET_REQUIRED = ["Model", "Process", "CAM Version", "T Number", "Endmill Code"]

EQUIPMENT_HEADERS = ["설비번호", "위치", "상태", "생산모델", "공정"]

INVENTORY_HEADERS = [
    "앤드밀코드", "앤드밀이름", "카테고리", "현재고", "최소재고", "최대재고", "위치",
    "공급업체1", "공급업체1_단가(VND)",
    "공급업체2", "공급업체2_단가(VND)",
    "공급업체3", "공급업체3_단가(VND)",
]
INVENTORY_REQUIRED = ["앤드밀코드", "현재고", "최소재고", "최대재고"]

TOOL_CHANGE_HEADERS = [
    "설비번호", "생산모델", "공정", "T번호",
    "앤드밀코드", "앤드밀이름", "실제Tool life", "교체사유", "교체자",
]

ENDMILL_MASTER_HEADERS = [
    "앤드밀코드", "Type", "카테고리", "앤드밀이름", "직경(mm)", "날수", "코팅", "소재",
    "공차", "나선각", "표준수명", "최소재고", "최대재고", "권장재고", "품질등급",
    "공급업체1", "공급업체1_단가(VND)",
    "공급업체2", "공급업체2_단가(VND)",
    "공급업체3", "공급업체3_단가(VND)",
    "설명",
]
ENDMILL_MASTER_REQUIRED = ["앤드밀코드", "카테고리", "앤드밀이름"]

SUPPLIER_SLOTS = 3
