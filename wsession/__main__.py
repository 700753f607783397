from wsession.bootstrap import main

raise SystemExit(main())
