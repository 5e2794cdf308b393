# recipe_api/core/errors.py
# 도메인 에러. 핸들러에서 {"error": message} JSON으로 변환된다 (main.py)


class RecipeError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RecipeError):
    # 잘못된 id / 누락 필드 / 범위 밖 평점 / 이미지 타입·크기
    status_code = 400


class NotFoundError(RecipeError):
    status_code = 404


class ProcessingError(RecipeError):
    # 이미지 디코드/인코드/쓰기 실패
    status_code = 500


class UnsupportedFormat(ProcessingError):
    # 디코드 불가 또는 JPEG/PNG 외 포맷
    pass


class PersistenceError(RecipeError):
    # DB 연결 불가, 타임아웃, 쿼리 실패
    status_code = 500
