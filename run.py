"""애플리케이션 엔트리포인트"""
import os
from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()

from app import create_app

app = create_app(os.environ.get('FLASK_CONFIG') or 'default')

if __name__ == '__main__':
    app.run(debug=True, port=int(os.environ.get('PORT', '5000')))
